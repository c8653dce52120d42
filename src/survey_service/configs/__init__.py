"""
Configuration records, the in-memory config cache and its change notification.
"""

from survey_service.configs.schemas import CONFIG_TYPE_ENV, Config, EnvConfigData

__all__ = ["CONFIG_TYPE_ENV", "Config", "EnvConfigData"]
