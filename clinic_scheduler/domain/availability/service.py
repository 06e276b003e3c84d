"""Availability service - Weekly availability store for providers"""

import logging
from typing import Iterable, Mapping, Optional, Union

from sqlalchemy.orm import Session

from ..scheduling.errors import NotFound
from .repository import AvailabilityRepository
from .template import WeeklyTemplate, build_template, template_from_json, template_to_json

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Validates and stores each provider's recurring weekly template"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    def set_schedule(self, provider_id: str, template: Union[Mapping, Iterable]) -> WeeklyTemplate:
        """Validate the whole template, then replace the stored one atomically"""
        validated = build_template(template)
        self.repo.replace_days(self.db, provider_id, template_to_json(validated))

        enabled_days = [day.value for day, schedule in validated.items() if schedule.enabled]
        logger.info(f"🗓️ Weekly schedule saved for provider {provider_id} (enabled: {enabled_days})")
        return validated

    def get_schedule(self, provider_id: str) -> WeeklyTemplate:
        """Stored template; raises NotFound if the provider never set one"""
        template = self.get_schedule_or_none(provider_id)
        if template is None:
            raise NotFound(
                f"No availability configured for provider {provider_id}", provider_id=provider_id
            )
        return template

    def get_schedule_or_none(self, provider_id: str) -> Optional[WeeklyTemplate]:
        schedule = self.repo.get_by_provider(self.db, provider_id)
        if schedule is None:
            return None
        return template_from_json(schedule.days)

    def list_providers(self) -> list[str]:
        return self.repo.list_provider_ids(self.db)
