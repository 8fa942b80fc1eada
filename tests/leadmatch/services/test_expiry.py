"""Tests for leadmatch.services.expiry — the recurring lead expiry sweep."""
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from leadmatch.database import utcnow
from leadmatch.errors import RepositoryUnavailable
from leadmatch.models.lead import Lead
from leadmatch.services.expiry import (
    SWEEP_JOB_DESCRIPTION,
    SWEEP_JOB_ID,
    run_expiry_sweep,
    schedule_expiry_sweep,
    sweep_expired_leads,
)


@pytest.fixture
def mock_scheduler():
    """Mock rq-scheduler Scheduler returned by get_scheduler(). Starts with no registered sweep."""
    scheduler = MagicMock()
    scheduler.__contains__.return_value = False
    with patch('leadmatch.extensions.get_scheduler', return_value=scheduler):
        yield scheduler


class TestSweepExpiredLeads:

    def test_expires_and_archives_overdue_leads(self, db_session, make_lead):
        now = utcnow()
        overdue = make_lead(expires_at=now - timedelta(days=1))
        current = make_lead(expires_at=now + timedelta(days=1))

        result = sweep_expired_leads(now)

        assert result.expired == 1
        db_session.expire_all()
        assert db_session.get(Lead, overdue.id).status == 'expired'
        assert db_session.get(Lead, overdue.id).archived is True
        assert db_session.get(Lead, current.id).status == 'open'

    def test_second_run_expires_nothing(self, make_lead):
        now = utcnow()
        make_lead(expires_at=now - timedelta(days=1))
        make_lead(expires_at=now - timedelta(hours=1))
        assert sweep_expired_leads(now).expired == 2
        assert sweep_expired_leads(now).expired == 0

    def test_leaves_non_open_leads_alone(self, db_session, make_lead):
        now = utcnow()
        closed = make_lead(status='closed', expires_at=now - timedelta(days=1))
        in_progress = make_lead(status='in_progress', expires_at=now - timedelta(days=1))
        assert sweep_expired_leads(now).expired == 0
        db_session.expire_all()
        assert db_session.get(Lead, closed.id).status == 'closed'
        assert db_session.get(Lead, in_progress.id).status == 'in_progress'

    def test_failure_rolls_back_and_raises(self, db_session, make_lead):
        lead = make_lead(expires_at=utcnow() - timedelta(days=1))
        with patch('leadmatch.services.repository.LeadRepository.expire_overdue_leads',
                   side_effect=RepositoryUnavailable(operation='expire_overdue_leads')):
            with pytest.raises(RepositoryUnavailable):
                sweep_expired_leads()
        db_session.expire_all()
        assert db_session.get(Lead, lead.id).status == 'open'

    def test_commit_failure_leaves_leads_unchanged(self, db_session, make_lead):
        from sqlalchemy.exc import OperationalError
        lead = make_lead(expires_at=utcnow() - timedelta(days=1))
        err = OperationalError('COMMIT', {}, Exception('disk I/O error'))
        with patch.object(db_session, 'commit', side_effect=err):
            with pytest.raises(RepositoryUnavailable):
                sweep_expired_leads()
        db_session.expire_all()
        assert db_session.get(Lead, lead.id).status == 'open'


class TestScheduleExpirySweep:

    def test_registers_periodic_job_under_fixed_id(self, mock_scheduler):
        job = schedule_expiry_sweep(delay_seconds=120, interval_seconds=900)
        assert job is mock_scheduler.schedule.return_value
        kwargs = mock_scheduler.schedule.call_args.kwargs
        assert kwargs['func'] is run_expiry_sweep
        assert kwargs['id'] == SWEEP_JOB_ID
        assert kwargs['interval'] == 900
        assert kwargs['repeat'] is None
        assert kwargs['description'] == SWEEP_JOB_DESCRIPTION

    def test_first_run_is_delayed(self, mock_scheduler):
        before = utcnow()
        schedule_expiry_sweep(delay_seconds=120)
        first_run = mock_scheduler.schedule.call_args.kwargs['scheduled_time']
        assert timedelta(seconds=119) <= first_run - before <= timedelta(seconds=121)

    def test_default_interval(self, mock_scheduler):
        schedule_expiry_sweep()
        assert mock_scheduler.schedule.call_args.kwargs['interval'] == 3600

    def test_registering_again_replaces_existing_schedule(self, mock_scheduler):
        schedule_expiry_sweep()
        mock_scheduler.__contains__.return_value = True
        schedule_expiry_sweep()

        mock_scheduler.cancel.assert_called_once_with(SWEEP_JOB_ID)
        ids = {c.kwargs['id'] for c in mock_scheduler.schedule.call_args_list}
        assert ids == {SWEEP_JOB_ID}

    def test_redis_failure_returns_none(self, mock_scheduler):
        mock_scheduler.schedule.side_effect = ConnectionError('redis down')
        assert schedule_expiry_sweep() is None


class TestRunExpirySweep:

    def test_runs_sweep(self, mock_scheduler, make_lead):
        make_lead(expires_at=utcnow() - timedelta(days=1))
        result = run_expiry_sweep()
        assert result.expired == 1

    def test_run_leaves_schedule_to_the_scheduler(self, mock_scheduler, make_lead):
        make_lead(expires_at=utcnow() - timedelta(days=1))
        run_expiry_sweep()
        mock_scheduler.schedule.assert_not_called()
        mock_scheduler.cancel.assert_not_called()

    def test_failure_is_swallowed(self, mock_scheduler):
        with patch('leadmatch.services.expiry.sweep_expired_leads', side_effect=RuntimeError('db gone')):
            assert run_expiry_sweep() is None

    def test_schedule_survives_failed_runs(self, mock_scheduler, make_lead):
        schedule_expiry_sweep(interval_seconds=60)
        mock_scheduler.schedule.side_effect = ConnectionError('redis down')

        with patch('leadmatch.services.expiry.sweep_expired_leads', side_effect=RuntimeError('db gone')):
            assert run_expiry_sweep() is None
        mock_scheduler.cancel.assert_not_called()

        # The next tick of the same registration still does the work
        make_lead(expires_at=utcnow() - timedelta(days=1))
        assert run_expiry_sweep().expired == 1
        assert mock_scheduler.schedule.call_count == 1
