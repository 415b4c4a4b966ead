"""Flask based API and dashboard for the menu scrapers."""
from __future__ import annotations

import json
import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

import requests
from flask import Flask, Response, current_app, jsonify, render_template, request

from job_store import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_RUNNING,
    JobRecord,
    JobStore,
    create_job_store,
)
from menu_scraper import (
    PROFILES,
    PipelineResult,
    ScraperConfig,
    ScraperError,
    UnknownProfileError,
    create_config,
    create_config_from_form,
    get_profile,
    run_pipeline_sync,
)
from menu_scraper.profiles import SiteProfile
from menu_scraper.storage import last_modified, menu_path, read_menu_file

LOGGER = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

EXTENSION_KEY = "menu_scraper"
# Per-request settings a caller may override when starting a job.
REQUEST_OVERRIDES = ("headless", "interactive_images", "max_interactive_items")

PipelineRunner = Callable[[Optional[str], str, ScraperConfig], PipelineResult]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebhookNotifier:
    """POST finished job records to a configured URL."""

    def __init__(self, url: Optional[str]) -> None:
        self.url = url

    def send(self, record: JobRecord) -> None:
        if not self.url:
            LOGGER.info("Skipping job notification (webhook URL missing).")
            return
        try:
            response = requests.post(self.url, json=record.to_dict(), timeout=10)
            response.raise_for_status()
        except requests.RequestException as exc:  # pragma: no cover - network safeguard
            LOGGER.error("Failed to deliver job notification for %s: %s", record.id, exc)


class JobManager:
    def __init__(self, store: JobStore, max_workers: int = 4) -> None:
        self.executor = ThreadPoolExecutor(max_workers=max_workers)
        self.store = store
        self.futures: Dict[str, Future] = {}

    def submit(
        self,
        scraper: str,
        url: str,
        run_fn: Callable[[], PipelineResult],
        metadata: Optional[Dict[str, Any]] = None,
        completion: Optional[Callable[[JobRecord], None]] = None,
    ) -> JobRecord:
        record = JobRecord(
            id=f"{scraper}_{uuid4().hex}",
            status=STATUS_RUNNING,
            scraper=scraper,
            url=url,
            start_time=_utcnow(),
            metadata=metadata or {},
        )

        def _runner() -> None:
            try:
                result = run_fn()
                finished = replace(
                    record, status=STATUS_COMPLETED, completed_time=_utcnow(), result=result.to_dict()
                )
            except Exception as exc:
                LOGGER.exception("Job %s failed", record.id)
                finished = replace(record, status=STATUS_FAILED, completed_time=_utcnow(), error=str(exc))
            self.store.put(finished)
            if completion:
                completion(finished)

        self.store.put(record)
        future = self.executor.submit(_runner)
        self.futures[record.id] = future
        # Finished jobs are read from the store; only running ones keep a future.
        future.add_done_callback(lambda _: self.futures.pop(record.id, None))
        return record

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[JobRecord]:
        future = self.futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get(job_id)

    def get(self, job_id: str) -> Optional[JobRecord]:
        return self.store.get(job_id)


def job_status_payload(record: JobRecord, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Shape a job record for the status endpoint."""

    payload: Dict[str, Any] = {
        "success": True,
        "jobId": record.id,
        "status": record.status,
        "scraper": record.scraper,
        "url": record.url,
        "startTime": record.start_time.isoformat(),
    }
    if record.status == STATUS_COMPLETED:
        payload["completedTime"] = record.completed_time.isoformat() if record.completed_time else None
        payload["result"] = record.result
        payload["downloadUrl"] = f"/api/v1/scrapers/{record.scraper}/download"
    elif record.status == STATUS_FAILED:
        payload["completedTime"] = record.completed_time.isoformat() if record.completed_time else None
        payload["error"] = record.error
    else:
        elapsed = ((now or _utcnow()) - record.start_time).total_seconds()
        payload["elapsedTime"] = f"{max(int(elapsed), 0)}s"
        payload["message"] = "Scraping in progress..."
    return payload


def _state() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


def _unknown_scraper(name: str):
    return (
        jsonify(
            {
                "success": False,
                "error": f"Unknown scraper: {name}",
                "availableScrapers": sorted(PROFILES),
            }
        ),
        404,
    )


def _attachment(payload: Any, filename: str) -> Response:
    return Response(
        json.dumps(payload, indent=2, ensure_ascii=False),
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _stored_menu(profile: SiteProfile):
    config: ScraperConfig = _state()["config"]
    path = menu_path(config.output_dir, profile.output_filename)
    return path, read_menu_file(path)


def create_app(
    config: Optional[ScraperConfig] = None,
    job_store: Optional[JobStore] = None,
    runner: Optional[PipelineRunner] = None,
    webhook_url: Optional[str] = None,
) -> Flask:
    """Build the Flask app with its own job store, job manager and notifier."""

    app = Flask(__name__)
    store = job_store or create_job_store(os.getenv("JOB_DB_PATH"))
    notifier = WebhookNotifier(webhook_url or os.getenv("JOB_WEBHOOK_URL"))
    app.extensions[EXTENSION_KEY] = {
        "config": config or create_config(),
        "store": store,
        "jobs": JobManager(store),
        "notifier": notifier,
        "runner": runner or run_pipeline_sync,
        "started": time.monotonic(),
    }

    @app.route("/")
    def index() -> str:
        return render_template("index.html", profiles=PROFILES.values())

    @app.route("/health")
    def health():
        return jsonify(
            {
                "status": "OK",
                "timestamp": _utcnow().isoformat(),
                "uptime": round(time.monotonic() - _state()["started"], 3),
            }
        )

    @app.route("/api/v1/scrapers")
    def list_scrapers():
        return jsonify(
            {
                "success": True,
                "scrapers": [
                    {
                        "id": profile.name,
                        "defaultUrl": profile.default_url,
                        "restaurant": profile.default_restaurant,
                        "estimatedTime": profile.estimated_time,
                        "menuEndpoint": f"/api/v1/scrapers/{profile.name}/menu",
                    }
                    for profile in PROFILES.values()
                ],
            }
        )

    @app.route("/api/v1/scrapers/<scraper>/menu")
    def get_menu(scraper: str):
        try:
            profile = get_profile(scraper)
        except UnknownProfileError:
            return _unknown_scraper(scraper)
        path, data = _stored_menu(profile)
        if data is None:
            return jsonify({"success": False, "error": "Menu data not found. Run the scraper first."}), 404
        return jsonify(
            {
                "success": True,
                "data": data,
                "lastUpdated": last_modified(path),
                "totalItems": len(data),
            }
        )

    @app.route("/api/v1/scrapers/<scraper>/download")
    def download_menu(scraper: str):
        try:
            profile = get_profile(scraper)
        except UnknownProfileError:
            return _unknown_scraper(scraper)
        _, data = _stored_menu(profile)
        if data is None:
            return jsonify({"success": False, "error": "Menu data not found. Run the scraper first."}), 404
        return _attachment(data, f"{profile.name}-menu-{_timestamp_ms()}.json")

    @app.route("/api/v1/scrapers/<scraper>/scrape-download")
    def scrape_and_download(scraper: str):
        try:
            profile = get_profile(scraper)
        except UnknownProfileError:
            return _unknown_scraper(scraper)
        url = request.args.get("url")
        if not url:
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "URL is required",
                        "message": "Please provide a URL as query parameter: ?url=YOUR_URL",
                    }
                ),
                400,
            )
        state = _state()
        LOGGER.info("Synchronous scrape of %s for %s", url, profile.name)
        try:
            result = state["runner"](url, profile.name, state["config"])
        except ScraperError as exc:
            LOGGER.error("Synchronous scrape failed: %s", exc)
            return jsonify({"success": False, "error": "Scraping failed", "message": str(exc)}), 500
        payload = {
            "success": True,
            "scraped_url": url,
            "scraped_at": _utcnow().isoformat(),
            "filename": result.filename,
            "total_items": result.total_items,
            "data": [item.to_dict() for item in result.items],
        }
        return _attachment(payload, f"{profile.name}-menu-{_timestamp_ms()}.json")

    @app.route("/api/v1/scrapers/<scraper>/scrape", methods=["POST"])
    def start_scrape(scraper: str):
        try:
            profile = get_profile(scraper)
        except UnknownProfileError:
            return _unknown_scraper(scraper)
        body = request.get_json(silent=True) or {}
        if not isinstance(body, dict):
            return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
        state = _state()
        url = body.get("url") or profile.default_url
        overrides = {key: body[key] for key in REQUEST_OVERRIDES if key in body}
        config = create_config_from_form(overrides, base=state["config"])
        runner = state["runner"]
        notifier: WebhookNotifier = state["notifier"]

        def _run() -> PipelineResult:
            return runner(url, profile.name, config)

        record = state["jobs"].submit(
            profile.name,
            url,
            _run,
            metadata={"overrides": overrides},
            completion=notifier.send if notifier.url else None,
        )
        LOGGER.info("Started job %s for %s", record.id, url)
        return jsonify(
            {
                "success": True,
                "message": "Scraping started in background",
                "jobId": record.id,
                "statusEndpoint": f"/api/v1/scrapers/status/{record.id}",
                "estimatedTime": profile.estimated_time,
            }
        )

    @app.route("/api/v1/scrapers/status/<job_id>")
    def job_status(job_id: str):
        record = _state()["jobs"].get(job_id)
        if record is None:
            return jsonify({"success": False, "error": "Job not found"}), 404
        return jsonify(job_status_payload(record))

    @app.route("/api/v1/scrapers/jobs")
    def list_jobs():
        records = _state()["store"].list()
        return jsonify(
            {
                "success": True,
                "totalJobs": len(records),
                "runningJobs": sum(1 for record in records if record.status == STATUS_RUNNING),
                "completedJobs": sum(1 for record in records if record.status == STATUS_COMPLETED),
                "failedJobs": sum(1 for record in records if record.status == STATUS_FAILED),
                "jobs": [job_status_payload(record) for record in records],
            }
        )

    @app.route("/api/v1/download/all")
    def download_all():
        scrapers = {profile.name: _stored_menu(profile)[1] for profile in PROFILES.values()}
        payload = {"scraped_at": _utcnow().isoformat(), "scrapers": scrapers}
        return _attachment(payload, f"all-menus-{_timestamp_ms()}.json")

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": "Endpoint not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        original = getattr(error, "original_exception", None) or error
        LOGGER.error("Unhandled error: %s", original)
        return jsonify({"error": "Internal Server Error", "message": str(original)}), 500

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
