"""
Add celery-beat schedules for payout and webhook maintenance tasks.

    run_payout_batch            daily at 02:00
    release_stuck_payouts       every 15 minutes
    cleanup_old_webhook_events  daily at 03:30
"""

from django.db import migrations

INTERVAL_TASKS = [
    {
        "name": "Release Stuck Payouts",
        "task": "payments.tasks.release_stuck_payouts",
        "every": 15,
        "period": "minutes",
        "description": "Returns payouts stuck in processing to pending.",
    },
]

CRONTAB_TASKS = [
    {
        "name": "Run Payout Batch",
        "task": "payments.tasks.run_payout_batch",
        "minute": "0",
        "hour": "2",
        "description": "Creates payouts for delivered orders and sends due payouts.",
    },
    {
        "name": "Cleanup Old Webhook Events",
        "task": "payments.tasks.cleanup_old_webhook_events",
        "minute": "30",
        "hour": "3",
        "description": "Deletes processed webhook audit rows past retention.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for spec in INTERVAL_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=spec["every"],
            period=spec["period"],
        )
        PeriodicTask.objects.get_or_create(
            name=spec["name"],
            defaults={
                "task": spec["task"],
                "interval": schedule,
                "enabled": True,
                "description": spec["description"],
            },
        )

    for spec in CRONTAB_TASKS:
        schedule, _ = CrontabSchedule.objects.get_or_create(
            minute=spec["minute"],
            hour=spec["hour"],
            day_of_week="*",
            day_of_month="*",
            month_of_year="*",
        )
        PeriodicTask.objects.get_or_create(
            name=spec["name"],
            defaults={
                "task": spec["task"],
                "crontab": schedule,
                "enabled": True,
                "description": spec["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    names = [spec["name"] for spec in INTERVAL_TASKS + CRONTAB_TASKS]
    PeriodicTask.objects.filter(name__in=names).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
