import json
import os
from firebase_functions import logger
from pydantic import BaseModel, Field, ValidationError


class AlertSettings(BaseModel):
    """Runtime settings for the fire report alert pipeline."""
    region: str = "europe-west4"
    presence_collection: str = "user_presence"
    users_collection: str = "users"
    default_radius_meters: float = Field(default=5000.0, gt=0)
    send_delay_seconds: float = Field(default=0.1, ge=0)

    notification_title: str = "🔥 Fire Alert - Community Report"
    default_description: str = "Fire reported by community member"
    android_channel_id: str = "fire_alerts"
    android_icon: str = "ic_fire_alert"
    android_color: str = "#FF6B00"
    apns_category: str = "FIRE_ALERT"


class ConfigLoader:
    _instance = None
    _settings = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if self._settings is None:
            self._load_config()

    def _load_config(self):
        """Load alert settings from settings.json file"""
        try:
            # Get the directory where this script is located
            script_dir = os.path.dirname(os.path.abspath(__file__))
            config_path = os.path.join(script_dir, 'settings.json')

            with open(config_path, 'r') as f:
                raw = json.load(f)

            self._settings = AlertSettings.model_validate(raw)
            logger.info("✅ Configuration loaded successfully")

        except FileNotFoundError:
            logger.error("❌ settings.json not found, using default alert settings")
            self._settings = AlertSettings()
        except json.JSONDecodeError as e:
            logger.error(f"❌ Invalid JSON in settings.json: {e}")
            self._settings = AlertSettings()
        except ValidationError as e:
            logger.error(f"❌ Invalid values in settings.json: {e}")
            self._settings = AlertSettings()

    @property
    def settings(self) -> AlertSettings:
        return self._settings

# Global instance
config = ConfigLoader()

# Convenience functions
def get_settings() -> AlertSettings:
    return config.settings
