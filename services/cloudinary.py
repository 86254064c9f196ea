import logging
from typing import Optional, Tuple

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from core.config import settings

logger = logging.getLogger(__name__)

MENU_FOLDER = "menu_items"


class CloudinaryService:
    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    @staticmethod
    def _public_id(menu_item_id: str) -> str:
        return f"menu_item_{menu_item_id}"

    def upload_menu_image(self, file_data: bytes, menu_item_id: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Upload a menu item photo to Cloudinary

        Returns:
            Tuple of (success: bool, url: Optional[str], error: Optional[str])
        """
        try:
            result = cloudinary.uploader.upload(
                file_data,
                public_id=self._public_id(menu_item_id),
                folder=MENU_FOLDER,
                overwrite=True,
                resource_type="image",
                format="webp",
                width=800,
                height=600,
                crop="fill",
                quality="auto",
            )
        except CloudinaryError as e:
            logger.error("Cloudinary upload failed for menu item %s: %s", menu_item_id, e)
            return False, None, str(e)
        return True, result.get("secure_url"), None

    def delete_menu_image(self, menu_item_id: str) -> Tuple[bool, Optional[str]]:
        """Delete a menu item photo; an image that is already gone counts as deleted."""
        try:
            result = cloudinary.uploader.destroy(f"{MENU_FOLDER}/{self._public_id(menu_item_id)}")
        except CloudinaryError as e:
            logger.error("Cloudinary delete failed for menu item %s: %s", menu_item_id, e)
            return False, str(e)

        if result.get("result") in ("ok", "not found"):
            return True, None
        return False, f"Failed to delete: {result.get('result')}"


# Global instance
cloudinary_service = CloudinaryService()
