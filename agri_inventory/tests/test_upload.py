import unittest

from inventory_fixtures import InventoryTestMixin
from services import storage_service
from services.storage_service import MAX_IMAGE_BYTES, InMemoryImageStore, build_object_path


class FailingImageStore:
    def put(self, path, data, content_type):
        raise OSError("bucket unreachable")


class UploadTests(InventoryTestMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.store = InMemoryImageStore()
        storage_service.set_image_store(self.store)

    def tearDown(self):
        storage_service.set_image_store(None)
        super().tearDown()

    def test_upload_requires_session(self):
        response = self.client().post("/api/upload", files={"file": ("a.png", b"\x89PNG", "image/png")})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.store.stored_objects, {})

    def test_missing_file_is_rejected(self):
        response = self.login("head@agri.test").post("/api/upload", data={"other": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "No file provided")

    def test_non_image_is_rejected_before_storage(self):
        response = self.login("head@agri.test").post(
            "/api/upload",
            files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["message"],
            "Invalid file type. Only images (JPEG, PNG, WebP, GIF) are allowed.",
        )
        self.assertEqual(self.store.stored_objects, {})

    def test_oversized_image_is_rejected_before_storage(self):
        payload = b"\0" * (MAX_IMAGE_BYTES + 1)
        response = self.login("head@agri.test").post(
            "/api/upload",
            files={"file": ("big.jpg", payload, "image/jpeg")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "File size exceeds 5MB limit.")
        self.assertEqual(self.store.stored_objects, {})

    def test_image_at_limit_is_stored(self):
        payload = b"\1" * MAX_IMAGE_BYTES
        response = self.login("head@agri.test").post(
            "/api/upload",
            files={"file": ("photo.webp", payload, "image/webp")},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertRegex(data["path"], r"^equipment/\d+-[0-9a-f]+\.webp$")
        self.assertEqual(data["url"], f"{self.store.base_url}/{data['path']}")
        self.assertEqual(self.store.stored_objects[data["path"]], ("image/webp", payload))

    def test_store_failure_is_server_error(self):
        storage_service.set_image_store(FailingImageStore())
        response = self.login("head@agri.test").post(
            "/api/upload",
            files={"file": ("a.gif", b"GIF89a", "image/gif")},
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "message": "Failed to upload file"})


class ObjectPathTests(unittest.TestCase):
    def test_extension_falls_back_to_content_type(self):
        self.assertTrue(build_object_path("camera-upload", "image/jpeg").endswith(".jpg"))
        self.assertTrue(build_object_path(None, "image/png").endswith(".png"))

    def test_paths_are_unique(self):
        self.assertNotEqual(build_object_path("a.png", "image/png"), build_object_path("a.png", "image/png"))


if __name__ == "__main__":
    unittest.main()
