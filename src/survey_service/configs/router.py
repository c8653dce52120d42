"""
Admin config API router. Reads are served from the config cache.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from survey_service.auth.middleware import AdminIdentityDep
from survey_service.configs.schemas import ConfigRequest, ConfigResponse
from survey_service.configs.service import ConfigService
from survey_service.dependencies import get_config_service

router = APIRouter(prefix="/api/admin/configs", tags=["admin", "configs"])

ConfigServiceDep = Annotated[ConfigService, Depends(get_config_service)]


@router.get("", response_model=list[ConfigResponse])
async def list_configs(
    identity: AdminIdentityDep,
    service: ConfigServiceDep,
    type: str | None = None,
) -> list[ConfigResponse]:
    """List the configs the caller may access, optionally of one type."""
    return [ConfigResponse.from_config(config) for config in service.list_configs(identity, type)]


@router.get("/{config_id}", response_model=ConfigResponse)
async def get_config(config_id: str, identity: AdminIdentityDep, service: ConfigServiceDep) -> ConfigResponse:
    return ConfigResponse.from_config(service.get_config(config_id, identity))


@router.post("", response_model=ConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_config(
    body: ConfigRequest,
    identity: AdminIdentityDep,
    service: ConfigServiceDep,
) -> ConfigResponse:
    """Create a config.

    The cache picks the new config up when the change notification is
    delivered, so an immediate read may still miss it.
    """
    return ConfigResponse.from_config(await service.create_config(body, identity))


@router.put("/{config_id}", response_model=ConfigResponse)
async def update_config(
    config_id: str,
    body: ConfigRequest,
    identity: AdminIdentityDep,
    service: ConfigServiceDep,
) -> ConfigResponse:
    return ConfigResponse.from_config(await service.update_config(config_id, body, identity))


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_config(config_id: str, identity: AdminIdentityDep, service: ConfigServiceDep) -> Response:
    await service.delete_config(config_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
