"""
Venue and resource catalogue.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
import logging

from campus_events.core.exceptions import PersistenceError, UnauthorizedError, ValidationError
from campus_events.db.database import DatabaseManager, db_manager
from campus_events.db.repositories import ResourceRepository, VenueRepository
from campus_events.models import Resource, UserRole, Venue, VenueStatus
from campus_events.schemas.catalog import ResourceCreate, VenueCreate
from .event_publisher import NotificationEmitter, NotificationType, notification_emitter

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Listing for everyone, registration for administrators.
    """

    def __init__(
        self,
        database: Optional[DatabaseManager] = None,
        emitter: Optional[NotificationEmitter] = None
    ):
        self.database = database or db_manager
        self.emitter = emitter or notification_emitter

    @staticmethod
    def _require_admin(role: UserRole) -> None:
        if role != UserRole.ADMIN:
            raise UnauthorizedError("Only administrators can change the catalogue")

    async def list_venues(self) -> List[Venue]:
        with self.database.get_session() as session:
            return VenueRepository(session).list()

    async def list_resources(self) -> List[Resource]:
        with self.database.get_session() as session:
            return ResourceRepository(session).list()

    async def create_venue(self, venue_data: VenueCreate, role: UserRole) -> Venue:
        """
        Register a venue. New venues start Available.

        Raises:
            UnauthorizedError: caller is not an Admin
        """
        self._require_admin(role)

        try:
            with self.database.get_session() as session:
                venue = VenueRepository(session).create({
                    "name": venue_data.name,
                    "capacity": venue_data.capacity,
                    "type": venue_data.type,
                    "features": list(venue_data.features),
                    "availability_status": VenueStatus.AVAILABLE,
                })
                payload = venue.to_dict()
        except SQLAlchemyError as e:
            logger.error(f"Failed to create venue {venue_data.name}: {e}")
            raise PersistenceError("Failed to create venue") from e

        logger.info(f"Venue {venue.id} registered: {venue.name} ({venue.capacity} seats)")
        await self.emitter.emit(NotificationType.VENUE_CREATED, payload)
        return venue

    async def create_resource(self, resource_data: ResourceCreate, role: UserRole) -> Resource:
        """
        Register a pooled resource. The pool starts full unless an available
        quantity is given.

        Raises:
            UnauthorizedError: caller is not an Admin
            ValidationError: available quantity outside [0, total]
        """
        self._require_admin(role)

        available = resource_data.available_quantity
        if available is None:
            available = resource_data.total_quantity
        if available < 0 or available > resource_data.total_quantity:
            raise ValidationError(
                "available_quantity must be between 0 and total_quantity",
                {"available_quantity": available, "total_quantity": resource_data.total_quantity}
            )

        try:
            with self.database.get_session() as session:
                resource = ResourceRepository(session).create({
                    "name": resource_data.name,
                    "category": resource_data.category,
                    "total_quantity": resource_data.total_quantity,
                    "available_quantity": available,
                    "unit": resource_data.unit,
                })
                payload = resource.to_dict()
        except SQLAlchemyError as e:
            logger.error(f"Failed to create resource {resource_data.name}: {e}")
            raise PersistenceError("Failed to create resource") from e

        logger.info(f"Resource {resource.id} registered: {resource.name} x{resource.total_quantity}")
        await self.emitter.emit(NotificationType.RESOURCE_CREATED, payload)
        return resource


# Global service instance
catalog_service = CatalogService()
