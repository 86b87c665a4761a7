import unittest

from fastapi.testclient import TestClient

from critique.app import create_app
from critique.config import Settings, get_settings
from critique.db import SqliteDbClient
from critique.db.statements import (
    DeleteLikes,
    DeleteReviews,
    DeleteSubmission,
    GetReview,
    GetSubmission,
    InsertReview,
    InsertSubmission,
)
from critique.db.supabase import SupabaseDbClient
from critique.dependencies import get_db_client, get_storage_client
from critique.storage import InMemoryStorageClient
from critique.tests.fakes import FakeSupabaseClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class RecordingDbClient:
    """Wraps a client and records every typed statement it runs."""

    def __init__(self, inner):
        self.inner = inner
        self.backend_name = inner.backend_name
        self.statements = []

    def query(self, text, params=()):
        return self.inner.query(text, params)

    def execute(self, statement):
        self.statements.append(statement)
        return self.inner.execute(statement)

    def initialize(self):
        self.inner.initialize()


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        self.db = RecordingDbClient(self._make_db())
        self.db.initialize()
        self.storage = InMemoryStorageClient()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_storage_client] = lambda: self.storage
        self.app.dependency_overrides[get_settings] = lambda: Settings(
            max_upload_bytes=1024
        )
        self.client = TestClient(self.app)

    def _make_db(self):
        return SqliteDbClient(":memory:")

    def _upload(self, name="Ann", student_id="S1", filename="cat.png"):
        return self.client.post(
            "/api/upload",
            files={"image": (filename, PNG_BYTES, "image/png")},
            data={"studentName": name, "studentId": student_id},
        )

    def _review(self, image_id, score, comment="ok"):
        return self.client.post(
            "/api/review",
            json={
                "imageId": image_id,
                "teacherName": "Ms. Lee",
                "score": score,
                "comment": comment,
            },
        )

    def test_upload_and_list(self):
        response = self._upload()
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertIsNotNone(payload["imageId"])
        self.assertTrue(payload["filename"].endswith(".png"))
        self.assertIn(payload["filename"], self.storage.stored_objects)

        images = self.client.get("/api/images").json()
        self.assertEqual(len(images), 1)
        self.assertEqual(images[0]["student_name"], "Ann")
        self.assertEqual(images[0]["original_name"], "cat.png")
        self.assertEqual(images[0]["like_count"], 0)

    def test_upload_rejects_non_images(self):
        response = self.client.post(
            "/api/upload",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            data={"studentName": "Ann", "studentId": "S1"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.storage.stored_objects, {})

    def test_upload_rejects_large_files(self):
        response = self.client.post(
            "/api/upload",
            files={"image": ("big.png", b"\x00" * 2048, "image/png")},
            data={"studentName": "Ann", "studentId": "S1"},
        )
        self.assertEqual(response.status_code, 413)

    def test_failed_insert_removes_stored_file(self):
        inner_execute = self.db.inner.execute

        def execute(statement):
            if isinstance(statement, InsertSubmission):
                raise RuntimeError("database unavailable")
            return inner_execute(statement)

        self.db.inner.execute = execute
        with self.assertRaises(RuntimeError):
            self._upload()
        self.assertEqual(self.storage.stored_objects, {})

    def test_like_twice_conflicts(self):
        image_id = self._upload().json()["imageId"]
        body = {"imageId": image_id, "studentName": "Ann", "studentId": "S1"}
        self.assertEqual(self.client.post("/api/like", json=body).status_code, 200)
        self.assertEqual(self.client.post("/api/like", json=body).status_code, 409)

        status = self.client.get(f"/api/like-status/{image_id}/S1").json()
        self.assertTrue(status["liked"])
        images = self.client.get("/api/images").json()
        self.assertEqual(images[0]["like_count"], 1)

    def test_unlike(self):
        image_id = self._upload().json()["imageId"]
        self.client.post(
            "/api/like",
            json={"imageId": image_id, "studentName": "Ann", "studentId": "S1"},
        )
        body = {"imageId": image_id, "studentId": "S1"}
        self.assertEqual(
            self.client.request("DELETE", "/api/like", json=body).status_code, 200
        )
        self.assertEqual(
            self.client.request("DELETE", "/api/like", json=body).status_code, 404
        )
        status = self.client.get(f"/api/like-status/{image_id}/S1").json()
        self.assertFalse(status["liked"])

    def test_review_upsert_keeps_one_row(self):
        self.db.inner.execute(
            InsertSubmission("Ann", "S1", "a.png", "a.png", "/u/a.png", 1)
        )
        for _ in range(6):
            self.db.inner.execute(
                InsertSubmission("Bo", "S2", "b.png", "b.png", "/u/b.png", 1)
            )
        first = self._review(7, 60, "first pass")
        self.assertEqual(first.json()["message"], "Review submitted")
        second = self._review(7, 85, "second pass")
        self.assertEqual(second.json()["message"], "Review updated")

        rows = self.db.inner.query(
            "SELECT score, comment FROM reviews WHERE image_id = $1", [7]
        ).rows
        self.assertEqual(rows, [{"score": 85, "comment": "second pass"}])

    def test_score_bounds(self):
        image_id = self._upload().json()["imageId"]
        for score in (-1, 101):
            with self.subTest(score=score):
                self.db.statements.clear()
                response = self._review(image_id, score)
                self.assertEqual(response.status_code, 422)
                self.assertEqual(self.db.statements, [])
        for score in (0, 100):
            with self.subTest(score=score):
                self.assertEqual(self._review(image_id, score).status_code, 200)

    def test_delete_cascades_to_reviews(self):
        image_id = self._upload().json()["imageId"]
        self._review(image_id, 70)
        self.client.post(
            "/api/like",
            json={"imageId": image_id, "studentName": "Bo", "studentId": "S2"},
        )
        self.db.statements.clear()

        response = self.client.delete(f"/api/images/{image_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            self.db.statements,
            [
                GetSubmission(image_id),
                DeleteReviews(image_id),
                DeleteLikes(image_id),
                DeleteSubmission(image_id),
            ],
        )
        self.assertIsNone(self.db.inner.execute(GetReview(image_id)).first())
        self.assertEqual(self.client.get("/api/images").json(), [])
        self.assertEqual(self.storage.stored_objects, {})

    def test_delete_missing_image(self):
        response = self.client.delete("/api/images/999")
        self.assertEqual(response.status_code, 404)


class SupabaseBackendApiTests(BackendApiTests):
    """The same HTTP behaviour on the Supabase adapter."""

    def _make_db(self):
        self.fake = FakeSupabaseClient()
        return SupabaseDbClient(self.fake)

    def test_review_upsert_keeps_one_row(self):
        self.db.inner.execute(InsertReview(7, "Ms. Lee", 60, "first pass"))
        response = self._review(7, 85, "second pass")
        self.assertEqual(response.json()["message"], "Review updated")
        reviews = self.fake.tables["reviews"]
        self.assertEqual(len(reviews), 1)
        self.assertEqual(reviews[0]["score"], 85)
        self.assertEqual(reviews[0]["comment"], "second pass")


if __name__ == "__main__":
    unittest.main()
