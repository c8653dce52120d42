"""
Configuration domain types and API schemas.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from survey_service.configs.models import ConfigRecord
from survey_service.shared.logging import get_logger

logger = get_logger(__name__)

CONFIG_TYPE_ENV = "env"


class EnvConfigData(BaseModel):
    """Payload of the ``env`` config."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    external_id: str = Field(
        default="",
        description="Name of the external identity field matched against calendar attendees",
    )
    analytics_token: str = Field(
        default="",
        description="Base64 SHA-256 digest of the static bearer token accepted by the analytics API",
    )


ConfigData = Union[EnvConfigData, dict[str, Any]]

# Decoders keyed by config type; unknown types keep their raw mapping.
_DATA_DECODERS: dict[str, type[BaseModel]] = {
    CONFIG_TYPE_ENV: EnvConfigData,
}


def decode_config_data(config_type: str, raw: Any) -> ConfigData:
    """Decode a raw payload into the shape registered for ``config_type``.

    Raises:
        pydantic.ValidationError: If the payload does not match the registered shape.
    """
    decoder = _DATA_DECODERS.get(config_type)
    if decoder is None:
        return dict(raw or {})
    return decoder.model_validate(raw or {})


@dataclass(frozen=True)
class Config:
    """Immutable config as held by the cache."""

    id: str
    type: str
    app_id: str
    org_id: str
    system: bool
    data: ConfigData
    date_created: datetime
    date_updated: datetime | None = None

    @classmethod
    def from_record(cls, record: ConfigRecord) -> "Config":
        """Build a config from a database row, decoding its payload by type.

        A payload that does not decode is kept raw and logged; consumers that
        need the typed shape reject it when they read it.
        """
        try:
            data = decode_config_data(record.type, record.data)
        except PydanticValidationError as exc:
            logger.warning(
                "Config payload did not decode",
                extra={"config_id": record.id, "config_type": record.type, "error": str(exc)},
            )
            data = dict(record.data or {})
        return cls(
            id=record.id,
            type=record.type,
            app_id=record.app_id,
            org_id=record.org_id,
            system=record.system,
            data=data,
            date_created=record.date_created,
            date_updated=record.date_updated,
        )

    def data_as_env(self) -> EnvConfigData | None:
        return self.data if isinstance(self.data, EnvConfigData) else None


class ConfigRequest(BaseModel):
    """Body of config create/update requests."""

    type: str = Field(..., min_length=1, max_length=100)
    app_id: str = Field(..., min_length=1, max_length=100)
    org_id: str = Field(..., min_length=1, max_length=100)
    system: bool = False
    data: dict[str, Any] = Field(default_factory=dict)


class ConfigResponse(BaseModel):
    """Config as returned by the admin API."""

    id: str
    type: str
    app_id: str
    org_id: str
    system: bool
    data: dict[str, Any]
    date_created: datetime
    date_updated: datetime | None = None

    @classmethod
    def from_config(cls, config: Config) -> "ConfigResponse":
        data = config.data.model_dump() if isinstance(config.data, BaseModel) else dict(config.data)
        return cls(
            id=config.id,
            type=config.type,
            app_id=config.app_id,
            org_id=config.org_id,
            system=config.system,
            data=data,
            date_created=config.date_created,
            date_updated=config.date_updated,
        )
