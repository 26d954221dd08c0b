from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Index, func, text
from sqlalchemy.orm import relationship
from attendance_api.database import Base

class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    check_in_time = Column(DateTime, nullable=False)
    check_in_latitude = Column(Float, nullable=True)
    check_in_longitude = Column(Float, nullable=True)
    check_out_time = Column(DateTime, nullable=True)  # NULL → open record
    check_out_latitude = Column(Float, nullable=True)
    check_out_longitude = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="attendance_records")

    __table_args__ = (
        Index("idx_attendance_user_id", "user_id"),
        Index("idx_attendance_check_in", "check_in_time"),
        Index("idx_attendance_check_out", "check_out_time"),
        # At most one open record per user
        Index(
            "uq_attendance_open_record",
            "user_id",
            unique=True,
            postgresql_where=text("check_out_time IS NULL"),
            sqlite_where=text("check_out_time IS NULL"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None
