import unittest

from inventory_fixtures import InventoryTestMixin
from models.inventory_models import Department


class DepartmentEndpointTests(InventoryTestMixin, unittest.TestCase):
    def test_public_listing_is_ordered_by_name(self):
        response = self.client().get("/api/departments")
        self.assertEqual(response.status_code, 200)
        names = [row["name"] for row in response.json()["data"]]
        self.assertEqual(names, sorted(names))

    def test_detail_includes_equipment_count(self):
        self.add_equipment("agronomy")
        self.add_equipment("agronomy", name="Planter")
        data = self.client().get("/api/departments/agronomy").json()["data"]
        self.assertEqual(data["equipmentCount"], 2)
        self.assertEqual(self.client().get("/api/departments/unknown").status_code, 404)

    def test_lookup_by_slug_of_name(self):
        data = self.client().get("/api/departments/by-slug/Food-Analysis-Laboratory").json()["data"]
        self.assertEqual(data["id"], "food-lab")

    def test_only_admin_creates_departments(self):
        payload = {"name": "Plant Pathology Section", "location": "Multan"}
        self.assertEqual(self.client().post("/api/departments", json=payload).status_code, 401)
        self.assertEqual(self.login("head@agri.test").post("/api/departments", json=payload).status_code, 403)

        created = self.login("admin@agri.test").post("/api/departments", json=payload)
        self.assertEqual(created.status_code, 200)
        self.assertEqual(created.json()["data"]["id"], "plant-pathology-section")

    def test_department_names_are_unique(self):
        admin = self.login("admin@agri.test")
        duplicate = admin.post("/api/departments", json={"name": "agronomy section", "location": "X", "id": "agro-2"})
        self.assertEqual(duplicate.status_code, 400)
        rename = admin.put("/api/departments/food-lab", json={"name": "Agronomy Section"})
        self.assertEqual(rename.status_code, 400)

    def test_admin_updates_department_profile(self):
        response = self.login("admin@agri.test").put(
            "/api/departments/agronomy",
            json={"focalPerson": "Dr. Ahmad", "phone": "061-1234567"},
        )
        self.assertEqual(response.status_code, 200)
        with self.Session() as db:
            department = db.get(Department, "agronomy")
            self.assertEqual(department.FocalPerson, "Dr. Ahmad")
            self.assertEqual(department.Name, "Agronomy Section")


class StockRegisterTests(InventoryTestMixin, unittest.TestCase):
    def test_stock_requires_session_and_own_department(self):
        self.assertEqual(self.client().get("/api/entomology/stock").status_code, 401)
        response = self.login("head@agri.test").get("/api/entomology/stock")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "You can only view stock of your own department")

    def test_stock_crud(self):
        client = self.login("erss@agri.test")
        created = client.post(
            "/api/entomology/stock",
            json={"name": "Light Trap", "type": "Trap", "quantityStr": "4 Nos", "dateReceived": "2020-08-10"},
        )
        self.assertEqual(created.status_code, 200)
        item = created.json()["data"]
        self.assertEqual(item["status"], "AVAILABLE")
        self.assertEqual(item["departmentId"], "erss")

        updated = client.put(
            f"/api/entomology/stock/{item['id']}",
            json={"name": "Light Trap", "type": "Trap", "status": "NEEDS_REPAIR"},
        )
        self.assertEqual(updated.json()["data"]["status"], "NEEDS_REPAIR")
        self.assertEqual(updated.json()["data"]["quantityStr"], "4 Nos")

        self.assertEqual(len(client.get("/api/entomology/stock").json()["data"]), 1)
        self.assertEqual(client.delete(f"/api/entomology/stock/{item['id']}").status_code, 200)
        self.assertEqual(client.get(f"/api/entomology/stock/{item['id']}").status_code, 404)

    def test_stock_validation(self):
        response = self.login("erss@agri.test").post("/api/entomology/stock", json={"name": "", "status": "LOST"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()["data"].keys()), {"name", "type", "status"})

    def test_missing_erss_department_is_not_found(self):
        admin = self.login("admin@agri.test")
        with self.Session() as db:
            db.delete(db.get(Department, "erss"))
            db.commit()
        response = admin.get("/api/entomology/stock")
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
