"""Read-only owner profile lookups used to tailor channel campaigns."""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from launchpad.core.database.database_session import get_db_session
from launchpad.core.database.models import OwnerProfile
from launchpad.core.schemas import OwnerEnrichment

logger = logging.getLogger(__name__)


class OwnerProfileProvider(ABC):
    @abstractmethod
    def get_enrichment(self, owner_id: str) -> OwnerEnrichment:
        """Profile context for the owner; empty enrichment when there is no profile."""
        pass


class DatabaseOwnerProfileProvider(OwnerProfileProvider):
    def get_enrichment(self, owner_id: str) -> OwnerEnrichment:
        try:
            with get_db_session() as session:
                profile = session.get(OwnerProfile, owner_id)
                if profile is None:
                    return OwnerEnrichment()
                return OwnerEnrichment(
                    service_type=profile.service_type,
                    city=profile.city,
                    landing_page_slug=profile.landing_page_slug,
                    average_ticket=Decimal(str(profile.average_ticket)) if profile.average_ticket is not None else None,
                )
        except SQLAlchemyError as e:
            # Missing enrichment only means default copy and targeting
            logger.warning(f"Could not read owner profile {owner_id}, launching without enrichment: {e}")
            return OwnerEnrichment()


class StaticOwnerProfileProvider(OwnerProfileProvider):
    def __init__(self, profiles: dict[str, OwnerEnrichment] | None = None):
        self.profiles = dict(profiles or {})

    def get_enrichment(self, owner_id: str) -> OwnerEnrichment:
        return self.profiles.get(owner_id, OwnerEnrichment())
