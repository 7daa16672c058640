import unittest
from decimal import Decimal

from inventory_fixtures import InventoryTestMixin
from models.inventory_models import Department
from models.register_models import (
    AdaptiveResearchPosition,
    AgriculturalExtensionOffice,
    AgronomyLabEquipment,
    FoodAnalysisLabEquipment,
    MNSUAMEstateFacility,
    RAEDCEquipment,
    RARIAsset,
    SoilWaterTestingProject,
)


class RegisterEndpointTests(InventoryTestMixin, unittest.TestCase):
    def add_department(self, department_id: str, name: str, *rows):
        with self.Session() as db:
            db.add(Department(DepartmentID=department_id, Name=name, Location="Punjab", FocalPerson="Dr. Saima"))
            db.add_all(rows)
            db.commit()

    def test_missing_register_department_is_not_found(self):
        response = self.client().get("/api/departments/rari")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"success": False, "message": "Regional Agricultural Research Institute department not found"},
        )

    def test_raedc_totals_and_charts(self):
        self.add_department(
            "raedc",
            "RAEDC",
            RAEDCEquipment(Name="Hostel Block A", FacilityType="Hostel", Capacity=40, Status="AVAILABLE", DepartmentID="raedc"),
            RAEDCEquipment(Name="Hostel Block B", FacilityType="Hostel", Capacity=20, Status="IN_USE", DepartmentID="raedc"),
            RAEDCEquipment(Name="Main Auditorium", FacilityType="Auditorium", Capacity=200, Status="AVAILABLE", DepartmentID="raedc"),
        )
        response = self.client().get("/api/departments/raedc")
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(
            data["stats"],
            {
                "totalFacilities": 3,
                "totalCapacity": 260,
                "operationalCount": 2,
                "facilityTypeCount": 2,
                "operationalPercentage": 66.7,
            },
        )
        self.assertEqual(data["charts"]["capacityByFacility"][0]["name"], "Auditorium")
        hostel = next(item for item in data["charts"]["facilityTypeDistribution"] if item["name"] == "Hostel")
        self.assertEqual(hostel["value"], 2)
        self.assertEqual(data["budget"]["year"], "2024-25")

    def test_soil_water_categories(self):
        self.add_department(
            "soil-water",
            "Soil & Water Testing Laboratory",
            SoilWaterTestingProject(Name="Annual budget", Type="Budget", BudgetAllocationTotalMillion=Decimal("12.500"), DepartmentID="soil-water"),
            SoilWaterTestingProject(Name="Supplementary", Type="Budget", BudgetAllocationTotalMillion=Decimal("2.250"), DepartmentID="soil-water"),
            SoilWaterTestingProject(Name="Soil Scientist", Type="HR - Officers", QuantityRequired=3, BPS=17, DepartmentID="soil-water"),
            SoilWaterTestingProject(Name="Lab Assistant", Type="HR - Officials", QuantityRequired=5, BPS=9, DepartmentID="soil-water"),
            SoilWaterTestingProject(Name="Vehicle", Type="Machinery", QuantityRequired=2, DepartmentID="soil-water"),
            SoilWaterTestingProject(Name="Telephone", Type="Communication A032", DepartmentID="soil-water"),
            SoilWaterTestingProject(Name="Lab block", Type="Civil Work A12", DepartmentID="soil-water"),
        )
        data = self.client().get("/api/departments/soil-water").json()["data"]
        self.assertEqual(
            data["statistics"],
            {"totalBudget": 14.75, "totalHR": 8, "totalOfficers": 3, "totalOfficials": 5, "totalMachinery": 2},
        )
        self.assertEqual([row["name"] for row in data["operatingCosts"]], ["Telephone"])
        self.assertEqual([row["name"] for row in data["capitalCosts"]], ["Lab block"])

    def test_extension_wing_utilization(self):
        self.add_department(
            "agricultural-extension-wing",
            "Agricultural Extension Wing",
            AgriculturalExtensionOffice(Name="Office Multan", AreaSquareFeet=1000, Status="Utilized", DepartmentID="agricultural-extension-wing"),
            AgriculturalExtensionOffice(Name="Office Vehari", AreaSquareFeet=500, Status="Utilized", DepartmentID="agricultural-extension-wing"),
            AgriculturalExtensionOffice(Name="Store Lodhran", AreaSquareFeet=250, Status="Un used", DepartmentID="agricultural-extension-wing"),
        )
        data = self.client().get("/api/departments/agricultural-extension-wing").json()["data"]
        self.assertEqual(data["stats"]["totalOffices"], 3)
        self.assertEqual(data["stats"]["totalArea"], 1750)
        self.assertEqual(data["stats"]["utilizedCount"], 2)
        self.assertEqual(data["stats"]["unusedCount"], 1)
        self.assertEqual(data["stats"]["utilizationPercentage"], 66.7)
        self.assertEqual(sorted(data["groups"].keys()), ["Un used", "Utilized"])

    def test_arc_positions(self):
        self.add_department(
            "arc",
            "Adaptive Research",
            AdaptiveResearchPosition(PostName="Assistant Research Officer", BPSScale="BPS-17", SanctionedPosts=10, FilledPosts=6, VacantPosts=4, OrderNumber=2, DepartmentID="arc"),
            AdaptiveResearchPosition(PostName="Research Officer", BPSScale="BPS-18", SanctionedPosts=9, FilledPosts=9, VacantPosts=0, OrderNumber=3, DepartmentID="arc"),
            AdaptiveResearchPosition(PostName="Director", BPSScale="BPS-19", SanctionedPosts=1, FilledPosts=0, VacantPosts=1, PromotionPosts=1, OrderNumber=1, DepartmentID="arc"),
        )
        data = self.client().get("/api/departments/arc").json()["data"]
        self.assertEqual(data["stats"]["totalSanctioned"], 20)
        self.assertEqual(data["stats"]["totalVacant"], 5)
        self.assertEqual(data["stats"]["promotionPosts"], 1)
        self.assertEqual(data["stats"]["vacancyRate"], 25.0)
        self.assertEqual([row["bps"] for row in data["breakdown"]["bpsBreakdown"]], ["BPS-19", "BPS-18", "BPS-17"])
        self.assertEqual(
            [row["postName"] for row in data["breakdown"]["vacancyLeaders"]],
            ["Assistant Research Officer", "Director"],
        )
        self.assertEqual(data["positions"][0]["postName"], "Director")

    def test_mnsuam_summaries(self):
        self.add_department(
            "mnsuam",
            "MNS University of Agriculture",
            MNSUAMEstateFacility(Name="Room 1", BlockName="Block A", CapacityPersons=20, DisplayOrder=1, DepartmentID="mnsuam"),
            MNSUAMEstateFacility(Name="Room 2", BlockName="Block A", CapacityPersons=30, DisplayOrder=2, DepartmentID="mnsuam"),
            MNSUAMEstateFacility(Name="Hall", BlockName="Block B", CapacityPersons=10, DisplayOrder=3, DepartmentID="mnsuam"),
            AgronomyLabEquipment(Name="Analytical Balance", Type="Balance", Quantity=2, FocalPerson="Dr. Saima", DepartmentID="mnsuam"),
            AgronomyLabEquipment(Name="Drying Oven", Type="Oven", FocalPerson="Dr. Bilal", DepartmentID="mnsuam"),
        )
        data = self.client().get("/api/departments/mnsuam").json()["data"]
        self.assertEqual(data["stats"]["totalFacilities"], 3)
        self.assertEqual(data["stats"]["totalCapacity"], 60)
        self.assertEqual(
            data["stats"]["blockSummary"],
            [{"blockName": "Block A", "rooms": 2, "capacity": 50}, {"blockName": "Block B", "rooms": 1, "capacity": 10}],
        )
        self.assertEqual(data["stats"]["equipmentSummary"]["totalUnits"], 3)
        self.assertEqual(data["stats"]["equipmentSummary"]["totalTypes"], 2)
        self.assertEqual([person["name"] for person in data["focalPersons"]], ["Dr. Saima", "Dr. Bilal"])

    def test_rari_orders_working_machinery_first(self):
        self.add_department(
            "rari",
            "Regional Agricultural Research Institute",
            RARIAsset(Name="Research farm", Type="Land", Quantity=12.5, DepartmentID="rari"),
            RARIAsset(Name="Admin block", Type="Building", Quantity=1, DepartmentID="rari"),
            RARIAsset(Name="Tractor", Type="Farm Machinery", Quantity=2, ConditionStatus="Functional", DepartmentID="rari"),
            RARIAsset(Name="Harvester", Type="Farm Machinery", Quantity=4, ConditionStatus="Non-functional", DepartmentID="rari"),
            RARIAsset(Name="Sprayer", Type="Farm Machinery", Quantity=3, ConditionStatus="Functional", DepartmentID="rari"),
            RARIAsset(Name="Scientist", Type="HR - Officers", Quantity=4, DepartmentID="rari"),
        )
        data = self.client().get("/api/departments/rari").json()["data"]
        self.assertEqual([row["name"] for row in data["farmMachinery"]], ["Sprayer", "Tractor", "Harvester"])
        self.assertEqual(data["stats"]["totalLandArea"], 12.5)
        self.assertEqual(data["stats"]["totalMachinery"], 9)
        self.assertEqual(data["stats"]["totalHR"], 4)

    def test_register_routes_win_over_department_detail(self):
        self.add_department("arc", "Adaptive Research")
        data = self.client().get("/api/departments/arc").json()["data"]
        self.assertIn("positions", data)
        self.assertNotIn("equipmentCount", data)

    def test_lab_equipment_uses_normalized_status(self):
        with self.Session() as db:
            db.add(FoodAnalysisLabEquipment(Name="HPLC", Type="Chromatography", Status="Under Repair", DepartmentID="food-lab"))
            db.commit()
        response = self.client().get("/api/departments/food-lab/lab-equipment")
        self.assertEqual(response.status_code, 200)
        row = response.json()["data"][0]
        self.assertEqual(row["status"], "NEEDS_REPAIR")
        self.assertEqual(row["rawStatus"], "Under Repair")
        self.assertEqual(self.client().get("/api/departments/none/lab-equipment").status_code, 404)


if __name__ == "__main__":
    unittest.main()
