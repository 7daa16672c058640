from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from db.base import Base


class Department(Base):
    __tablename__ = "Departments"

    DepartmentID = Column(String(64), primary_key=True)
    Name = Column(String(255), nullable=False, unique=True)
    Location = Column(String(255))
    Description = Column(String(2000))
    FocalPerson = Column(String(255))
    Designation = Column(String(255))
    Email = Column(String(255))
    Phone = Column(String(50))
    Logo = Column(String(500))
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())

    Equipment = relationship("Equipment", back_populates="Department")
    Users = relationship("User", back_populates="Department")


class User(Base):
    __tablename__ = "Users"

    UserID = Column(Integer, primary_key=True)
    Email = Column(String(255), nullable=False, unique=True)
    Name = Column(String(255))
    PasswordHash = Column(String(256))
    PasswordSalt = Column(String(64))
    Role = Column(String(20), nullable=False, default="DEPT_HEAD")
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"))
    IsActive = Column(Boolean, default=True)
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())

    Department = relationship("Department", back_populates="Users")


class Equipment(Base):
    __tablename__ = "Equipment"

    EquipmentID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Type = Column(String(100), nullable=False)
    Status = Column(String(20), nullable=False, default="AVAILABLE")
    PurchaseDate = Column(Date, nullable=False)
    ImageUrl = Column(String(1000))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())

    Department = relationship("Department", back_populates="Equipment")
    MaintenanceLogs = relationship(
        "MaintenanceLog",
        back_populates="Equipment",
        cascade="all, delete-orphan",
        order_by="MaintenanceLog.LogDate.desc()",
    )


class MaintenanceLog(Base):
    __tablename__ = "MaintenanceLogs"

    MaintenanceLogID = Column(Integer, primary_key=True)
    EquipmentID = Column(Integer, ForeignKey("Equipment.EquipmentID", ondelete="CASCADE"), nullable=False, index=True)
    LogDate = Column(Date, nullable=False)
    Cost = Column(Numeric(12, 2), nullable=False, default=0)
    Description = Column(String(1000), nullable=False)
    CreatedAt = Column(DateTime, server_default=func.now())

    Equipment = relationship("Equipment", back_populates="MaintenanceLogs")
