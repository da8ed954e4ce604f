"""
Celery tasks for booking maintenance
"""
import logging
from datetime import datetime
from vetcare.extensions import celery
from vetcare.services import BookingService

logger = logging.getLogger(__name__)


@celery.task(name='tasks.mark_missed_bookings')
def mark_missed_bookings():
    """
    Move confirmed bookings whose slot has passed without a consultation to 'missed'.
    Scheduled by beat every MISSED_SWEEP_INTERVAL_SECONDS.

    Returns:
        dict: Sweep results
    """
    try:
        count = BookingService().mark_missed_bookings()
        return {
            'success': True,
            'updated_count': count,
            'timestamp': datetime.now().isoformat()
        }
    except Exception as e:
        logger.error(f"Error marking missed bookings: {e}", exc_info=True)
        return {'success': False, 'error': str(e)}
