"""
Audit trail of security-relevant events.

Recording an event must never get in the way of the operation that caused
it. If an entry cannot be stored, the failure is reported to the operational
log and otherwise ignored.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from . import domain, logging, util
from .models import DBActivityLog
from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class ActivityLog(ABC):
    """Append-only log of what users did."""

    def record(self, user_id: Optional[str],
               action: Union[domain.Action, str],
               description: Optional[str] = None,
               origin: Optional[domain.Origin] = None,
               metadata: Optional[dict] = None) -> None:
        """
        Append an entry to the log.

        Never raises.
        """
        entry = domain.ActivityEntry(
            user_id=str(user_id) if user_id is not None else None,
            action=action.value if isinstance(action, domain.Action)
            else str(action),
            description=description,
            origin=origin or domain.Origin(),
            metadata=dict(metadata or {}),
            created_at=util.now()
        )
        try:
            self._append(entry)
        except Exception:
            logger.exception('Could not record %s activity', entry.action)

    @abstractmethod
    def _append(self, entry: domain.ActivityEntry) -> None:
        """Persist an entry."""

    @abstractmethod
    def history(self, user_id: str,
                limit: int = 50) -> List[domain.ActivityEntry]:
        """Get the most recent entries for a user, newest first."""


class DatabaseActivityLog(ActivityLog):
    """Keeps the audit trail in the ``user_activity_logs`` table."""

    def _append(self, entry: domain.ActivityEntry) -> None:
        with util.transaction() as db:
            db.add(DBActivityLog(
                user_id=entry.user_id,
                action=entry.action,
                description=entry.description,
                ip_address=entry.origin.ip_address,
                user_agent=entry.origin.user_agent,
                extra=entry.metadata,
                created_at=util.to_db(entry.created_at)
            ))

    def history(self, user_id: str,
                limit: int = 50) -> List[domain.ActivityEntry]:
        try:
            with util.transaction() as db:
                rows = db.query(DBActivityLog) \
                    .filter(DBActivityLog.user_id == str(user_id)) \
                    .order_by(DBActivityLog.created_at.desc(),
                              DBActivityLog.entry_id.desc()) \
                    .limit(limit) \
                    .all()
                return [_to_domain(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f'Failed to load activity: {util.describe(e)}'
            ) from e


def _to_domain(row: DBActivityLog) -> domain.ActivityEntry:
    return domain.ActivityEntry(
        user_id=row.user_id,
        action=row.action,
        description=row.description,
        origin=domain.Origin(ip_address=row.ip_address,
                             user_agent=row.user_agent),
        metadata=dict(row.extra or {}),
        created_at=util.from_db(row.created_at)
    )
