from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings
from app.worker import scheduler_main


def test_register_jobs_adds_daily_drift_scan() -> None:
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler_main.register_jobs(scheduler)

    job = scheduler.get_job(scheduler_main.DRIFT_JOB_ID)
    assert job is not None
    assert job.func is scheduler_main.run_drift_job
    fields = {field.name: str(field) for field in job.trigger.fields}
    assert fields["hour"] == str(settings.drift_job_hour)
    assert fields["minute"] == str(settings.drift_job_minute)
