# petqr/services/storage_service.py
import uuid
import logging
from typing import IO, Optional
from flask import Flask
from firebase_admin import storage

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


class StorageService:
    """
    General purpose Firebase Storage service.
    Uploads pet photos and returns their public URL.
    """

    def __init__(self, bucket=None):
        """
        The bucket is normally injected by init_app; tests may pass one directly.
        """
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Called once from create_app to bind the Storage bucket.

        :param app: Flask application
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET must be set in .env or the config.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage initialized.")

    def upload_pet_photo(self, qr_id: str, stream: IO[bytes], filename: str, content_type: Optional[str]) -> str:
        """
        Upload a pet photo and make it publicly readable.

        :param qr_id: display identifier of the pet the photo belongs to
        :param stream: file-like object with the image bytes
        :param filename: original client filename (only the extension is kept)
        :param content_type: MIME type of the upload
        :return: publicly resolvable URL of the stored photo
        """
        if not self.bucket:
            raise RuntimeError("StorageService is not initialized. Call init_app first.")
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValueError(f"'{content_type}' is not an accepted image type.")

        extension = filename.rsplit('.', 1)[-1].lower() if '.' in (filename or '') else 'jpg'
        destination_blob_name = f"pet_photos/{qr_id}/{uuid.uuid4()}.{extension}"
        blob = self.bucket.blob(destination_blob_name)

        try:
            blob.upload_from_file(stream, content_type=content_type)
            blob.make_public()
        except Exception as e:
            logging.error(f"Photo upload failed ({destination_blob_name}): {e}", exc_info=True)
            raise

        logging.info(f"Uploaded pet photo to {destination_blob_name}")
        return blob.public_url
