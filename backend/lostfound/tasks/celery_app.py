from celery import Celery

from lostfound.config import get_config


def make_celery() -> Celery:
    config = get_config()
    broker = config.CELERY_BROKER_URL
    app = Celery(
        "lostfound",
        broker=broker,
        backend=config.CELERY_RESULT_BACKEND or broker,
        include=["lostfound.tasks.jobs.matching"],
    )
    # Late acks may redeliver a job; matching is idempotent per pair
    app.conf.update(task_track_started=True, task_acks_late=True)
    return app


celery_app = make_celery()
