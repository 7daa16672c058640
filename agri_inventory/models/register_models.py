from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from db.base import Base


class FoodAnalysisLabEquipment(Base):
    __tablename__ = "FoodAnalysisLabEquipment"

    ItemID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Type = Column(String(100))
    Status = Column(String(100))
    LabSectionName = Column(String(255))
    RoomNumber = Column(String(50))
    Quantity = Column(Integer)
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class ERSSStockRegister(Base):
    __tablename__ = "ERSSStockRegister"

    ItemID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Type = Column(String(100), nullable=False)
    QuantityStr = Column(String(100))
    DateReceived = Column(Date)
    LastVerificationDate = Column(String(100))
    CurrentStatusRemarks = Column(String(1000))
    Status = Column(String(20), nullable=False, default="AVAILABLE")
    ImageUrl = Column(String(1000))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())


class RAEDCEquipment(Base):
    __tablename__ = "RAEDCEquipment"

    ItemID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Type = Column(String(100))
    FacilityType = Column(String(100))
    Capacity = Column(Integer)
    Location = Column(String(255))
    Functionality = Column(String(255))
    Status = Column(String(50))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class SoilWaterTestingProject(Base):
    __tablename__ = "SoilWaterTestingProject"

    ItemID = Column(Integer, primary_key=True)
    Name = Column(String(500), nullable=False)
    Type = Column(String(100), nullable=False)
    Category = Column(String(255))
    BPS = Column(Integer)
    QuantityRequired = Column(Integer)
    BudgetAllocationTotalMillion = Column(Numeric(14, 3))
    JustificationOrYear = Column(String(500))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class AgriculturalExtensionOffice(Base):
    __tablename__ = "AgriculturalExtensionWing"

    ItemID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Location = Column(String(255))
    AreaSquareFeet = Column(Float)
    Status = Column(String(50))
    Remarks = Column(String(1000))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class AdaptiveResearchPosition(Base):
    __tablename__ = "AdaptiveResearchPositions"

    PositionID = Column(Integer, primary_key=True)
    AttachedDepartment = Column(String(255))
    PostName = Column(String(255), nullable=False)
    BPSScale = Column(String(20))
    SanctionedPosts = Column(Integer, default=0)
    FilledPosts = Column(Integer, default=0)
    VacantPosts = Column(Integer, default=0)
    PromotionPosts = Column(Integer, default=0)
    InitialRecruitmentPosts = Column(Integer, default=0)
    Remarks = Column(String(1000))
    OrderNumber = Column(Integer)
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class MNSUAMEstateFacility(Base):
    __tablename__ = "MNSUAMEstateFacilities"

    FacilityID = Column(Integer, primary_key=True)
    BlockName = Column(String(255))
    Name = Column(String(255), nullable=False)
    FacilityType = Column(String(100))
    CapacityPersons = Column(Integer)
    CapacityLabel = Column(String(100))
    Type = Column(String(100), default="Estate Facility")
    ImageUrl = Column(String(1000))
    DisplayOrder = Column(Integer)
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class AgronomyLabEquipment(Base):
    __tablename__ = "AgronomyLabEquipment"

    ItemID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Type = Column(String(100))
    Quantity = Column(Integer)
    FocalPerson = Column(String(255))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())


class RARIAsset(Base):
    __tablename__ = "RARIAssets"

    AssetID = Column(Integer, primary_key=True)
    Name = Column(String(255), nullable=False)
    Type = Column(String(100), nullable=False)
    Category = Column(String(255))
    Quantity = Column(Float)
    ConditionStatus = Column(String(100))
    UseApplication = Column(String(500))
    DepartmentID = Column(String(64), ForeignKey("Departments.DepartmentID"), nullable=False, index=True)
    CreatedAt = Column(DateTime, server_default=func.now())
