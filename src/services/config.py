"""
Loads and handles config from resources/config.yml and the environment.
Credentials (CONTENTSTACK_API_KEY, CONTENTSTACK_DELIVERY_TOKEN) are loaded from .env
"""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from core.entities import ResourceKind

logger = logging.getLogger(__name__)

REGION_HOSTS: Dict[str, str] = {
    "default": "cdn.contentstack.io",
    "EU": "eu-cdn.contentstack.com",
    "AZURE_NA": "azure-na-cdn.contentstack.com",
    "AZURE_EU": "azure-eu-cdn.contentstack.com",
}

ENV_KEYS = (
    "CONTENTSTACK_API_KEY",
    "CONTENTSTACK_DELIVERY_TOKEN",
    "CONTENTSTACK_ENVIRONMENT",
    "CONTENTSTACK_REGION",
    "CONTENTSTACK_DOCUMENTATION_UID",
    "CONTENTSTACK_FAQ_UID",
    "CONTENTSTACK_CATEGORY_UID",
    "CONTENTSTACK_FEEDBACK_UID",
    "FEEDBACK_WEBHOOK_URL",
    "ANALYTICS_WEBHOOK_URL",
    "HTTP_TIMEOUT",
    "LOG_LEVEL",
)


class Config(BaseModel):
    # Credentials
    CONTENTSTACK_API_KEY: Optional[str] = None
    CONTENTSTACK_DELIVERY_TOKEN: Optional[str] = None

    # Stack
    CONTENTSTACK_ENVIRONMENT: str = "production"
    CONTENTSTACK_REGION: str = "default"

    # Content type UIDs
    CONTENTSTACK_DOCUMENTATION_UID: str = "documentation"
    CONTENTSTACK_FAQ_UID: str = "faq"
    CONTENTSTACK_CATEGORY_UID: str = "category"
    CONTENTSTACK_FEEDBACK_UID: str = "feedback"

    # Webhooks
    FEEDBACK_WEBHOOK_URL: str = "http://localhost:8000/api/webhooks/feedback"
    ANALYTICS_WEBHOOK_URL: str = "http://localhost:8000/api/webhooks/analytics"

    HTTP_TIMEOUT: float = 30.0
    LOG_LEVEL: str = "INFO"

    @property
    def api_host(self) -> str:
        region = (self.CONTENTSTACK_REGION or "default").upper()
        if region == "DEFAULT":
            return REGION_HOSTS["default"]
        return REGION_HOSTS.get(region, REGION_HOSTS["default"])

    @property
    def has_credentials(self) -> bool:
        return bool(self.CONTENTSTACK_API_KEY and self.CONTENTSTACK_DELIVERY_TOKEN)

    def content_type_uid(self, resource: ResourceKind) -> str:
        return getattr(self, resource.env_key)


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _read_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, 'r') as file:
        return yaml.safe_load(file) or {}


def load_config(config_path: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> Config:
    """
    Load configuration.
    Precedence: environment (including .env) > config.yml > defaults.
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    values = _read_yaml(config_path or _get_config_path())
    values = {k: v for k, v in values.items() if k in ENV_KEYS and v is not None}

    for key in ENV_KEYS:
        if env.get(key):
            values[key] = env[key]

    config = Config(**values)

    if not config.has_credentials:
        logger.warning(
            "Content API credentials missing: set CONTENTSTACK_API_KEY and "
            "CONTENTSTACK_DELIVERY_TOKEN in your .env file"
        )

    region = (config.CONTENTSTACK_REGION or "default").upper()
    if region != "DEFAULT" and region not in REGION_HOSTS:
        logger.warning(f"Unknown CONTENTSTACK_REGION '{config.CONTENTSTACK_REGION}', using {config.api_host}")

    return config
