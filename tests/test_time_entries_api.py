"""Timer start/stop/trim, daily totals and the feature flag."""
from datetime import timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from tasktrack import timeutil
from tasktrack.database import create_tables
from tasktrack.models import TimeEntry
from tasktrack.routers import time_entries


def test_time_routes_are_404_when_disabled(client, make_task):
    task = make_task()

    response = client.post(f"/api/tasks/{task['id']}/time/start")
    assert response.status_code == 404
    assert response.json() == {"error": "Time tracking disabled"}
    assert client.post(f"/api/tasks/{task['id']}/time/stop").status_code == 404
    assert client.post("/api/time_entries/1/trim", json={}).status_code == 404
    assert client.delete("/api/time_entries/1").status_code == 404


def test_summaries_are_zero_when_disabled(client, make_task):
    task = make_task()
    assert client.get("/api/time_entries/summary/today").json() == {"total_seconds": 0}
    assert client.get(f"/api/tasks/{task['id']}/time/summary/today").json() == {"total_seconds": 0}


def test_start_twice_returns_same_entry(client, clock, time_tracking, make_task):
    task = make_task()

    first = client.post(f"/api/tasks/{task['id']}/time/start")
    assert first.status_code == 201
    assert first.json()["running"] is True
    assert first.json()["end_at"] is None

    clock.advance(30)
    second = client.post(f"/api/tasks/{task['id']}/time/start")
    assert second.status_code == 200
    assert second.json() == first.json()


def test_start_on_missing_task_is_404(client, time_tracking):
    response = client.post("/api/tasks/99/time/start")
    assert response.status_code == 404
    assert response.json() == {"error": "Task not found"}


def test_stop_records_whole_seconds(client, clock, time_tracking, make_task):
    task = make_task()
    client.post(f"/api/tasks/{task['id']}/time/start")
    clock.advance(90.7)

    response = client.post(f"/api/tasks/{task['id']}/time/stop")
    assert response.status_code == 200
    entry = response.json()
    assert entry["running"] is False
    assert entry["duration_seconds"] == 90
    assert entry["created_at"] == entry["end_at"]


def test_stop_without_running_timer_is_404(client, time_tracking, make_task):
    task = make_task()
    response = client.post(f"/api/tasks/{task['id']}/time/stop")
    assert response.status_code == 404
    assert response.json() == {"error": "No active timer"}


def test_second_running_entry_violates_unique_index(db, clock, make_task):
    task = make_task()
    db.add(TimeEntry(task_id=task["id"], start_at=clock.now))
    db.commit()

    db.add(TimeEntry(task_id=task["id"], start_at=clock.now))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_start_race_returns_winning_entry(client, time_tracking, monkeypatch, make_task):
    task = make_task()
    winner = client.post(f"/api/tasks/{task['id']}/time/start").json()

    real_lookup = time_entries._running_entry
    calls = []

    def stale_lookup(db, task_id):
        calls.append(task_id)
        # First look misses the running entry, as a concurrent request would.
        return None if len(calls) == 1 else real_lookup(db, task_id)

    monkeypatch.setattr(time_entries, "_running_entry", stale_lookup)

    response = client.post(f"/api/tasks/{task['id']}/time/start")
    assert response.status_code == 200
    assert response.json()["id"] == winner["id"]


def _finished_entry(client, clock, task_id, seconds):
    client.post(f"/api/tasks/{task_id}/time/start")
    clock.advance(seconds)
    return client.post(f"/api/tasks/{task_id}/time/stop").json()


def test_trim_defaults_to_fifteen_minutes(client, clock, time_tracking, make_task):
    task = make_task()
    entry = _finished_entry(client, clock, task["id"], 3600)

    trimmed = client.post(f"/api/time_entries/{entry['id']}/trim").json()
    assert trimmed["duration_seconds"] == 2700

    trimmed = client.post(f"/api/time_entries/{entry['id']}/trim", json={"seconds": 0}).json()
    assert trimmed["duration_seconds"] == 1800


def test_trim_clamps_to_start(client, clock, time_tracking, make_task):
    task = make_task()
    entry = _finished_entry(client, clock, task["id"], 600)

    trimmed = client.post(f"/api/time_entries/{entry['id']}/trim", json={"seconds": 3600}).json()
    assert trimmed["duration_seconds"] == 0
    assert trimmed["end_at"] == trimmed["start_at"]


def test_trim_far_beyond_datetime_range_clamps_to_start(client, clock, time_tracking, make_task):
    task = make_task()
    entry = _finished_entry(client, clock, task["id"], 600)

    response = client.post(f"/api/time_entries/{entry['id']}/trim", json={"seconds": 1e12})
    assert response.status_code == 200
    assert response.json()["duration_seconds"] == 0
    assert response.json()["end_at"] == entry["start_at"]


def test_trim_rejects_running_and_negative(client, clock, time_tracking, make_task):
    task = make_task()
    running = client.post(f"/api/tasks/{task['id']}/time/start").json()

    response = client.post(f"/api/time_entries/{running['id']}/trim", json={"seconds": 60})
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot trim a running time entry"}

    clock.advance(600)
    client.post(f"/api/tasks/{task['id']}/time/stop")
    response = client.post(f"/api/time_entries/{running['id']}/trim", json={"seconds": -5})
    assert response.status_code == 400
    assert response.json() == {"error": "seconds must be > 0"}


def test_delete_entry(client, clock, time_tracking, make_task):
    task = make_task()
    entry = _finished_entry(client, clock, task["id"], 60)

    assert client.delete(f"/api/time_entries/{entry['id']}").json() == {"ok": True}
    assert client.delete(f"/api/time_entries/{entry['id']}").status_code == 404


def test_feed_merges_entries_by_end_or_start(client, clock, time_tracking, make_task):
    task = make_task()
    tid = task["id"]

    client.post(f"/api/tasks/{tid}/time/start")          # t0
    clock.advance(10)
    client.post(f"/api/tasks/{tid}/updates", json={"content": "during"})  # t0+10
    clock.advance(10)
    done = client.post(f"/api/tasks/{tid}/time/stop").json()  # ends t0+20
    clock.advance(10)
    running = client.post(f"/api/tasks/{tid}/time/start").json()  # starts t0+30
    clock.advance(60)
    client.post(f"/api/tasks/{tid}/updates", json={"content": "latest"})  # t0+90

    feed = client.get(f"/api/tasks/{tid}/updates").json()
    assert [(item["type"], item["id"]) for item in feed] == [
        ("update", feed[0]["id"]),
        ("time", running["id"]),
        ("time", done["id"]),
        ("update", feed[3]["id"]),
    ]
    assert feed[0]["content"] == "latest"
    assert feed[1]["created_at"] == running["start_at"]


def test_daily_total_clips_to_local_day(client, db, clock, time_tracking, make_task):
    task = make_task()
    day_start, _ = timeutil.local_day_bounds(clock.now)

    # 23:00 today until 01:00 tomorrow: only the first hour is today.
    db.add(
        TimeEntry(
            task_id=task["id"],
            start_at=day_start + timedelta(hours=23),
            end_at=day_start + timedelta(hours=25),
            duration_seconds=7200,
        )
    )
    # Entirely yesterday.
    db.add(
        TimeEntry(
            task_id=task["id"],
            start_at=day_start - timedelta(hours=3),
            end_at=day_start - timedelta(hours=1),
            duration_seconds=7200,
        )
    )
    db.commit()

    assert client.get("/api/time_entries/summary/today").json() == {"total_seconds": 3600}
    assert client.get(f"/api/tasks/{task['id']}/time/summary/today").json() == {"total_seconds": 3600}


def test_daily_total_counts_running_entry_until_now(client, db, clock, time_tracking, make_task):
    task = make_task()
    other = make_task("Other")
    day_start, _ = timeutil.local_day_bounds(clock.now)

    db.add(TimeEntry(task_id=task["id"], start_at=day_start - timedelta(hours=2)))
    db.add(
        TimeEntry(
            task_id=other["id"],
            start_at=day_start,
            end_at=day_start + timedelta(minutes=30),
            duration_seconds=1800,
        )
    )
    db.commit()

    running_part = int((clock.now - day_start).total_seconds())
    assert client.get(f"/api/tasks/{task['id']}/time/summary/today").json() == {
        "total_seconds": running_part
    }
    assert client.get("/api/time_entries/summary/today").json() == {
        "total_seconds": running_part + 1800
    }


def test_task_summary_for_missing_task_is_404(client, time_tracking):
    assert client.get("/api/tasks/3/time/summary/today").status_code == 404


def _naive_utc(value):
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def test_daily_total_counts_rows_stored_in_naive_form(client, db, engine, clock, time_tracking, make_task):
    task = make_task()
    day_start, _ = timeutil.local_day_bounds(clock.now)

    # Written by an older build: space-separated, no zone. One hour falls today.
    db.execute(
        text(
            "INSERT INTO time_entries (task_id, start_at, end_at, duration_seconds) "
            "VALUES (:task_id, :start_at, :end_at, 7200)"
        ),
        {
            "task_id": task["id"],
            "start_at": _naive_utc(day_start - timedelta(hours=1)),
            "end_at": _naive_utc(day_start + timedelta(hours=1)),
        },
    )
    db.commit()
    create_tables(engine)

    assert client.get("/api/time_entries/summary/today").json() == {"total_seconds": 3600}
    assert client.get(f"/api/tasks/{task['id']}/time/summary/today").json() == {"total_seconds": 3600}

    stored = db.execute(text("SELECT start_at, end_at FROM time_entries")).one()
    assert stored.start_at == timeutil.format_timestamp(day_start - timedelta(hours=1))
    assert stored.end_at == timeutil.format_timestamp(day_start + timedelta(hours=1))
