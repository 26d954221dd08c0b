from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, Index, UniqueConstraint, func, true
from sqlalchemy.orm import relationship
from attendance_api.database import Base
from attendance_api.core.enums import Role

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(50), nullable=True)
    name = Column(String(100), nullable=False)
    mobile_number = Column(String(20), nullable=False)
    password_hash = Column(Text, nullable=True)  # NULL → cannot use password login
    role = Column(
        Enum(Role, name="user_role", native_enum=False, length=20, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.EMPLOYEE,
        server_default=Role.EMPLOYEE.value,
    )
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime, server_default=func.now())

    attendance_records = relationship(
        "AttendanceRecord",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("mobile_number", name="uq_users_mobile_number"),
        UniqueConstraint("employee_id", name="uq_users_employee_id"),
        Index("idx_users_role", "role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
