"""Unit tests for the periodic archive job."""

import pytest
from unittest.mock import MagicMock, patch

from postmottak import scheduler
from postmottak.core.errors import ArchiveRunInProgressError
from postmottak.core.models import ArchiveRunSummary


@pytest.fixture(autouse=True)
def reset_scheduler():
    scheduler._scheduler = None
    yield
    scheduler._scheduler = None


class TestArchiveEmailsJob:
    """Tests for the scheduled job body."""

    def test_runs_processor(self):
        processor = MagicMock()
        processor.process.return_value = ArchiveRunSummary()

        with patch("postmottak.processors.archive.ArchiveProcessor", return_value=processor):
            scheduler.run_now()

        processor.process.assert_called_once()

    def test_skips_while_another_run_holds_the_mailbox(self):
        processor = MagicMock()
        processor.process.side_effect = ArchiveRunInProgressError("An archive run is already in progress")

        with patch("postmottak.processors.archive.ArchiveProcessor", return_value=processor):
            scheduler.archive_emails_job()

        processor.process.assert_called_once()

    def test_errors_do_not_escape(self):
        with patch("postmottak.processors.archive.ArchiveProcessor", side_effect=ValueError("INBOX_FOLDER_ID is required")):
            scheduler.archive_emails_job()


class TestStartScheduler:
    """Tests for scheduler lifecycle."""

    def test_single_instance_job(self):
        background = MagicMock()

        with patch("postmottak.scheduler.BackgroundScheduler", return_value=background):
            started = scheduler.start_scheduler(interval_minutes=5)
            again = scheduler.start_scheduler()

        assert started is background
        assert again is background
        assert scheduler.get_scheduler() is background
        background.start.assert_called_once()

        kwargs = background.add_job.call_args.kwargs
        assert kwargs["id"] == "archive_emails"
        assert kwargs["max_instances"] == 1
        assert kwargs["coalesce"] is True

    def test_stop(self):
        background = MagicMock()

        with patch("postmottak.scheduler.BackgroundScheduler", return_value=background):
            scheduler.start_scheduler(interval_minutes=5)
        scheduler.stop_scheduler()

        background.shutdown.assert_called_once_with(wait=False)
        assert scheduler.get_scheduler() is None
