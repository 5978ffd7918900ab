"""Celery tasks for ride-related background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def broadcast_ride_request_task(ride_id: int):
    """
    Find eligible drivers for a freshly created ride and push the request.

    Enqueued from transaction.on_commit, so the ride row is visible here.
    """
    from services.matching import dispatch_ride

    try:
        reached = dispatch_ride(ride_id)
    except Exception:
        logger.exception("Dispatch failed for ride %s", ride_id)
        return 0

    logger.info("Ride %s broadcast to %s driver(s)", ride_id, reached)
    return reached


def enqueue_ride_broadcast(ride_id: int) -> None:
    try:
        broadcast_ride_request_task.delay(ride_id)
    except Exception:
        logger.exception("Could not enqueue dispatch for ride %s", ride_id)
