"""
FastAPI dependencies resolving the services built in the application lifespan.
"""

from fastapi import Request

from survey_service.alerts.service import AlertService
from survey_service.analytics.service import AnalyticsService
from survey_service.configs.service import ConfigService
from survey_service.surveys.responses import SurveyResponseService
from survey_service.surveys.service import SurveyService


def get_survey_service(request: Request) -> SurveyService:
    return request.app.state.survey_service


def get_response_service(request: Request) -> SurveyResponseService:
    return request.app.state.response_service


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_alert_service(request: Request) -> AlertService:
    return request.app.state.alert_service


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service
