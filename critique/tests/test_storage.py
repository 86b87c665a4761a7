import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from critique.storage import LocalStorageClient, S3StorageClient


class LocalStorageClientTests(unittest.TestCase):
    def test_upload_and_delete(self):
        with tempfile.TemporaryDirectory() as tmp:
            storage = LocalStorageClient(upload_dir=os.path.join(tmp, "uploads"))
            result = storage.upload(b"abc", "a.png", "image/png")
            self.assertTrue(result.success)
            self.assertEqual(result.url, "/uploads/a.png")
            self.assertEqual(result.size, 3)
            self.assertTrue(os.path.exists(os.path.join(tmp, "uploads", "a.png")))

            self.assertTrue(storage.delete("a.png").success)
            missing = storage.delete("a.png")
            self.assertFalse(missing.success)
            self.assertIsNotNone(missing.error)

    def test_filenames_cannot_escape_upload_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            storage = LocalStorageClient(upload_dir=tmp)
            storage.upload(b"x", "../escape.png")
            self.assertTrue(os.path.exists(os.path.join(tmp, "escape.png")))


class S3StorageClientTests(unittest.TestCase):
    @patch("critique.storage.boto3.client")
    def test_upload_uses_prefixed_key(self, mock_client_factory):
        s3 = MagicMock()
        mock_client_factory.return_value = s3
        storage = S3StorageClient(bucket="images", region="us-east-1")

        result = storage.upload(b"abc", "a.png", "image/png")

        self.assertTrue(result.success)
        s3.put_object.assert_called_once_with(
            Bucket="images", Key="uploads/a.png", Body=b"abc", ContentType="image/png"
        )
        self.assertEqual(
            result.url, "https://images.s3.us-east-1.amazonaws.com/uploads/a.png"
        )

    @patch("critique.storage.boto3.client")
    def test_delete_failure_is_reported(self, mock_client_factory):
        s3 = MagicMock()
        s3.delete_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject"
        )
        mock_client_factory.return_value = s3
        storage = S3StorageClient(
            bucket="images", region="auto", public_base_url="https://cdn.test"
        )

        result = storage.delete("a.png")

        self.assertFalse(result.success)
        self.assertIn("AccessDenied", result.error)
        self.assertEqual(storage.public_url("a.png"), "https://cdn.test/uploads/a.png")


if __name__ == "__main__":
    unittest.main()
