"""
Business Settings Service
"""

import logging
from typing import Optional

from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap
from ..exceptions import BusinessSettingsError, DashboardAPIError, wrap_error
from ..models import BusinessSettings


logger = logging.getLogger(__name__)


class BusinessService:
    """Service for /business-settings"""

    def __init__(self, client: ApiClient):
        self.client = client

    def get_settings(self) -> Optional[BusinessSettings]:
        """Fetch the stored business settings; None when the backend has none"""
        try:
            data = unwrap(self.client.get("/business-settings"))
        except DashboardAPIError as e:
            logger.error(f"Failed to load business settings: {e}")
            raise wrap_error(e, BusinessSettingsError, "Failed to load business settings")
        if isinstance(data, dict) and isinstance(data.get("settings"), dict):
            data = data["settings"]
        if not isinstance(data, dict) or not data:
            return None
        try:
            return BusinessSettings.model_validate(data)
        except ModelValidationError as e:
            raise BusinessSettingsError(f"Malformed business settings payload: {e}")

    def save_settings(self, settings: BusinessSettings) -> BusinessSettings:
        try:
            logger.info(f"Saving business settings for {settings.business_name}")
            self.client.post("/business-settings", data=settings.model_dump(mode="json", by_alias=True))
        except DashboardAPIError as e:
            raise wrap_error(e, BusinessSettingsError, "Failed to save business settings")
        return settings
