"""
Example script demonstrating a tracking session with Pit Wall.

Optional environment variables in .env:
- GOOGLE_CLIENT_ID / ALLOWED_EMAIL: Google Sign-In settings
- PITWALL_REQUIRE_AUTH: set to "false" to skip sign-in (used below when no
  settings are present)
- PITWALL_STORAGE_DIR: where records are stored
"""
import asyncio
import datetime
from pathlib import Path
from pitwall.interfaces.interface import JobTracker
from pitwall.query.engine import SortMode
from pitwall.storage.models import ApplicationDraft, ApplicationStatus
from pitwall.utils.config import Config
from pitwall.utils.logger import setup_logger

async def main():
    config = Config(".env")
    settings = config.get_settings()
    setup_logger("pitwall", settings.log_file, settings.log_level)

    if not settings.auth.configured:
        settings.require_auth = False

    tracker = JobTracker(settings=settings)
    if not await tracker.start():
        print(tracker.state.auth_error)
        return

    if tracker.auth_enabled:
        credential = input("Paste a Google ID token: ").strip()
        if tracker.sign_in(credential) is None:
            print(tracker.state.auth_error)
            return

    tracker.create(ApplicationDraft(
        company="Acme",
        role="Backend Engineer",
        source="LinkedIn",
        date=datetime.date(2024, 1, 5),
    ))
    tracker.create(ApplicationDraft(
        company="Beta",
        role="Data Scientist",
        source="Referral",
        status=ApplicationStatus.INTERVIEWING,
    ))

    tracker.set_sort(SortMode.COMPANY_ASC)
    result = tracker.view()
    print(f"\n{len(result.visible)} results | {result.hidden_count} hidden by filters")
    for record in result.visible:
        print(f"  {record.company:<12} {record.role:<20} {record.status.value:<13} {record.date}")
    print("Counts:", result.counts)

    export_dir = Path("exports")
    export_dir.mkdir(exist_ok=True)
    print("\nExported", tracker.save_json_export(str(export_dir)))
    print("Exported", tracker.save_csv_export(str(export_dir)))

if __name__ == "__main__":
    asyncio.run(main())
