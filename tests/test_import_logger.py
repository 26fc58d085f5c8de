"""
Tests for the import audit log.
"""

import pytest

from backend.models import ImportLog, ImportStatus
from services.import_logger import ImportLogger
from services.import_schema import ImportContext, ImportErrorDetail


@pytest.fixture
def import_logger(session):
    return ImportLogger(session)


class TestLifecycle:
    """Logs open in processing and close exactly once."""

    def test_create_opens_processing_log(self, import_logger, session, context, tenant):
        log_id = import_logger.create('plan.xlsx', 'xlsx', 12, context)

        log = session.get(ImportLog, log_id)
        assert log.status == ImportStatus.PROCESSING.value
        assert log.company_id == tenant['company'].id
        assert log.user_id == tenant['manager'].id
        assert log.import_type == 'hierarchy'
        assert log.total_records == 12
        assert log.started_at is not None
        assert log.completed_at is None
        assert not log.is_complete()

    def test_update_closes_log(self, import_logger, session, context):
        log_id = import_logger.create('plan.csv', 'csv', 3, context)
        errors = [ImportErrorDetail(row=4, field='parent_title', message='Parent initiative not found: X',
                                    data='X', code='PARENT_NOT_FOUND')]

        import_logger.update(log_id, ImportStatus.FAILED, 2, 1, errors)

        log = session.get(ImportLog, log_id)
        assert log.status == 'failed'
        assert log.successful_records == 2
        assert log.failed_records == 1
        assert log.error_details == [{
            'row': 4,
            'field': 'parent_title',
            'message': 'Parent initiative not found: X',
            'data': 'X',
            'code': 'PARENT_NOT_FOUND',
            'sheet': None,
        }]
        assert log.is_complete()
        assert log.duration_seconds() >= 0

    def test_second_update_rejected(self, import_logger, context):
        log_id = import_logger.create('plan.csv', 'csv', 0, context)
        import_logger.update(log_id, ImportStatus.COMPLETED, 0, 0, [])

        with pytest.raises(ValueError, match='already closed'):
            import_logger.update(log_id, ImportStatus.FAILED, 0, 0, [])

    def test_update_unknown_log(self, import_logger):
        with pytest.raises(LookupError):
            import_logger.update(9999, ImportStatus.COMPLETED, 0, 0, [])

    def test_to_dict(self, import_logger, session, context):
        log_id = import_logger.create('plan.csv', 'csv', 1, context)
        import_logger.update(log_id, ImportStatus.COMPLETED, 1, 0, [])

        data = session.get(ImportLog, log_id).to_dict()

        assert data['id'] == log_id
        assert data['status'] == 'completed'
        assert data['file_name'] == 'plan.csv'
        assert data['error_details'] == []


class TestHistory:
    """History is per tenant, newest first."""

    def test_newest_first_with_limit(self, import_logger, context):
        ids = [import_logger.create(f'plan-{i}.csv', 'csv', 0, context) for i in range(4)]

        history = import_logger.history(context.tenant_id, limit=3)

        assert [log.id for log in history] == list(reversed(ids))[:3]

    def test_offset(self, import_logger, context):
        ids = [import_logger.create(f'plan-{i}.csv', 'csv', 0, context) for i in range(4)]

        history = import_logger.history(context.tenant_id, limit=2, offset=2)

        assert [log.id for log in history] == [ids[1], ids[0]]

    def test_tenants_are_isolated(self, import_logger, context, tenant):
        other = ImportContext(tenant_id=tenant['other_company'].id, uploader_id=tenant['outsider'].id)
        own_id = import_logger.create('ours.csv', 'csv', 0, context)
        other_id = import_logger.create('theirs.csv', 'csv', 0, other)

        assert [log.id for log in import_logger.history(context.tenant_id)] == [own_id]
        assert import_logger.count(context.tenant_id) == 1
        assert import_logger.get(other_id, context.tenant_id) is None
        assert import_logger.get(own_id, context.tenant_id).file_name == 'ours.csv'
