"""Celery app for ``SCHEDULER_MODE=celery``.

Run a worker plus beat; beat fires the hourly scan and the daily summary
declared in ``lifestock.config.celeryconfig``.
"""

from celery import Celery
from celery.signals import setup_logging

celery = Celery("lifestock")
celery.config_from_object("lifestock.config.celeryconfig")


@setup_logging.connect
def use_loguru(**kwargs):
    # Connecting this signal stops Celery from installing its own root handlers
    from lifestock.utils.logging import custom_logger  # noqa: F401
