from functools import lru_cache
import logging

from schedule_draft.application.ports.booking_gateway import BookingGatewayPort
from schedule_draft.application.use_cases.conflict_refresh import ConflictRefreshUseCase
from schedule_draft.application.use_cases.draft_reconciliation import DraftReconciliationUseCase
from schedule_draft.core.config import settings
from schedule_draft.domain.entities.schedule_session import ScheduleSession
from schedule_draft.infrastructure.booking.http_gateway import HttpBookingGateway
from schedule_draft.infrastructure.booking.mock_gateway import MockBookingGateway, demo_events


_session: ScheduleSession | None = None
_reconciliation_use_case: DraftReconciliationUseCase | None = None


@lru_cache
def get_booking_gateway() -> BookingGatewayPort:
    logger = logging.getLogger(__name__)
    if settings.BOOKING_GATEWAY.lower() == "mock":
        logger.info("Using MockBookingGateway (BOOKING_GATEWAY=mock)")
        return MockBookingGateway(events=demo_events())
    logger.info("Using HttpBookingGateway", extra={"status": settings.SCHEDULE_API_BASE_URL})
    return HttpBookingGateway()


def get_schedule_session() -> ScheduleSession:
    global _session
    if _session is None:
        _session = ScheduleSession()
    return _session


def get_reconciliation_use_case() -> DraftReconciliationUseCase:
    global _reconciliation_use_case
    if _reconciliation_use_case is None:
        gateway = get_booking_gateway()
        _reconciliation_use_case = DraftReconciliationUseCase(
            gateway=gateway,
            session=get_schedule_session(),
            conflict_refresh=ConflictRefreshUseCase(gateway),
        )
    return _reconciliation_use_case
