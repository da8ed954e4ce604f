"""
Keeps consultation status in step with the video session lifecycle.

VideoSessionService emits `session_started` / `session_ended` after it has
committed a transition, passing its own database session; the receivers below
advance the linked consultation through that session.
The two state machines stay separately owned: a stale or missing
consultation never fails the session transition that triggered the update.
"""
import logging
from datetime import datetime
from typing import Optional

from blinker import Namespace

from vetcare.extensions import db
from vetcare.models import Consultation

logger = logging.getLogger(__name__)

_signals = Namespace()

session_started = _signals.signal('video-session-started')
session_ended = _signals.signal('video-session-ended')

# Consultation statuses the bridge is allowed to move forward from.
# 'pending' and 'confirmed' are tolerated for rows created by older clients.
STARTABLE_STATUSES = ('scheduled', 'confirmed', 'pending')
COMPLETABLE_STATUSES = ('in_progress', 'scheduled', 'confirmed', 'pending')


def mark_consultation_in_progress(session, consultation_id: str, started_at: datetime) -> bool:
    updated = session.query(Consultation).filter(
        Consultation.id == consultation_id,
        Consultation.status.in_(STARTABLE_STATUSES),
    ).update({'status': 'in_progress', 'started_at': started_at}, synchronize_session=False)
    session.commit()
    return updated > 0


def mark_consultation_completed(session, consultation_id: str, completed_at: datetime, duration_seconds: int) -> bool:
    updated = session.query(Consultation).filter(
        Consultation.id == consultation_id,
        Consultation.status.in_(COMPLETABLE_STATUSES),
    ).update({
        'status': 'completed',
        'completed_at': completed_at,
        'duration': int(round(duration_seconds / 60)),
    }, synchronize_session=False)
    session.commit()
    return updated > 0


@session_started.connect
def _on_session_started(sender, consultation_id: Optional[str] = None, started_at: Optional[datetime] = None,
                        session=None, **extra):
    if not consultation_id:
        return
    session = session or db.session
    try:
        if mark_consultation_in_progress(session, consultation_id, started_at):
            logger.info("Consultation %s moved to in_progress", consultation_id)
    except Exception as e:
        logger.warning("Failed to update consultation %s on session start: %s", consultation_id, e)
        session.rollback()


@session_ended.connect
def _on_session_ended(sender, consultation_id: Optional[str] = None, ended_at: Optional[datetime] = None,
                      duration_seconds: int = 0, session=None, **extra):
    if not consultation_id:
        return
    session = session or db.session
    try:
        if mark_consultation_completed(session, consultation_id, ended_at, duration_seconds):
            logger.info("Consultation %s completed (%ss)", consultation_id, duration_seconds)
    except Exception as e:
        logger.warning("Failed to update consultation %s on session end: %s", consultation_id, e)
        session.rollback()
