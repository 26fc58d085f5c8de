"""
End-to-end tests for HierarchyImportService against an in-memory database.
"""

from datetime import date

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from backend.models import Activity, ImportLog, Initiative, Objective
from conftest import make_csv, make_xlsx, record_row
from services.field_utils import CANONICAL_COLUMNS
from services.hierarchy_resolver import HierarchyResolver
from services.import_schema import ImportContext, ImportResult, PeriodFilter
from services.import_service import BatchState, HierarchyImportService
from services.repository import HierarchyRepository


def run_import(session, context, rows, file_type='csv', period=None):
    service = HierarchyImportService(session, context, period=period)
    content = make_csv(rows) if file_type == 'csv' else rows
    return service.import_file(content, f'plan.{file_type}', file_type)


def error_codes(result):
    return [(error.row, error.field, error.code) for error in result.errors]


class TestHappyPath:
    """Complete objective -> initiative -> activity chains."""

    def test_full_chain_is_created(self, session, context, scenario_rows):
        result = run_import(session, context, scenario_rows)

        assert result.success is True
        assert result.total_records == 3
        assert result.successful_records == 3
        assert result.failed_records == 0
        assert result.errors == []

        objective = session.query(Objective).one()
        initiative = session.query(Initiative).one()
        activity = session.query(Activity).one()
        assert objective.title == 'Grow Revenue'
        assert objective.status == 'in_progress'
        assert objective.progress == 50
        assert objective.department == 'Sales'
        assert initiative.objective_id == objective.id
        assert activity.initiative_id == initiative.id
        assert activity.end_date == date(2024, 1, 20)

    def test_log_records_the_run(self, session, context, scenario_rows):
        result = run_import(session, context, scenario_rows)

        log = session.get(ImportLog, result.import_log_id)
        assert log.status == 'completed'
        assert log.file_name == 'plan.csv'
        assert log.file_type == 'csv'
        assert log.total_records == 3
        assert log.successful_records == 3
        assert log.failed_records == 0
        assert log.error_details == []
        assert log.completed_at is not None

    def test_children_listed_before_parents(self, session, context, scenario_rows):
        result = run_import(session, context, list(reversed(scenario_rows)))

        assert result.successful_records == 3

    def test_parent_already_in_database(self, session, context, scenario_rows):
        run_import(session, context, scenario_rows[:1])

        result = run_import(session, context, [
            record_row('initiative', 'Second Campaign', parent_title='Grow Revenue'),
        ])

        assert result.success is True
        existing = session.query(Objective).filter_by(title='Grow Revenue').one()
        created = session.query(Initiative).filter_by(title='Second Campaign').one()
        assert created.objective_id == existing.id

    def test_state_ends_completed(self, session, context, scenario_rows):
        service = HierarchyImportService(session, context)
        service.import_file(make_csv(scenario_rows), 'plan.csv', 'csv')

        assert service.state == BatchState.COMPLETED


class TestRowFailures:
    """Partial success: bad rows are skipped and reported."""

    def test_misspelled_parent(self, session, context, scenario_rows):
        scenario_rows[2]['parent_title'] = 'Launch Campain'

        result = run_import(session, context, scenario_rows)

        assert result.success is False
        assert result.successful_records == 2
        assert result.failed_records == 1
        assert error_codes(result) == [(4, 'parent_title', 'PARENT_NOT_FOUND')]
        assert session.query(Activity).count() == 0

    def test_progress_out_of_range(self, session, context, scenario_rows):
        scenario_rows.append(record_row('objective', 'Overachiever', progress='150'))

        result = run_import(session, context, scenario_rows)

        assert result.successful_records == 3
        assert result.failed_records == 1
        assert error_codes(result) == [(5, 'progress', 'FIELD_INVALID')]
        assert result.errors[0].data == 150

    def test_row_after_multiline_cell_is_reported_by_its_row(self, session, context):
        result = run_import(session, context, [
            record_row('objective', 'Grow', description='line one\nline two'),
            record_row('initiative', 'Launch', parent_title='Nope'),
        ])

        assert error_codes(result) == [(3, 'parent_title', 'PARENT_NOT_FOUND')]

    def test_fractional_progress_is_rejected(self, session, context):
        result = run_import(session, context, [record_row('objective', 'Almost', progress='100.4')])

        assert result.successful_records == 0
        assert error_codes(result) == [(2, 'progress', 'FIELD_INVALID')]

    def test_numeric_date_is_not_a_timestamp(self, session, context):
        result = run_import(session, context, [record_row('objective', 'Epoch', start='86400')])

        assert error_codes(result) == [(2, 'start_date', 'FIELD_INVALID')]
        assert session.query(Objective).count() == 0

    def test_initiative_without_parent_never_resolved(self, session, context, monkeypatch):
        resolved_titles = []
        original = HierarchyResolver.resolve

        def tracking(self, level, position, record):
            resolved_titles.append(record.title)
            return original(self, level, position, record)

        monkeypatch.setattr(HierarchyResolver, 'resolve', tracking)

        result = run_import(session, context, [
            record_row('objective', 'Grow Revenue'),
            record_row('initiative', 'Orphan', parent_title=''),
        ])

        assert error_codes(result) == [(3, 'parent_title', 'FIELD_MISSING')]
        assert resolved_titles == ['Grow Revenue']

    def test_failed_parent_fails_its_children(self, session, context, scenario_rows):
        scenario_rows[0]['end_date'] = '2023-12-01'

        result = run_import(session, context, scenario_rows)

        assert result.successful_records == 0
        assert result.failed_records == 3
        assert error_codes(result) == [
            (2, 'end_date', 'DATE_ORDER'),
            (3, 'parent_title', 'PARENT_NOT_FOUND'),
            (4, 'parent_title', 'PARENT_NOT_FOUND'),
        ]

    def test_owner_of_another_company(self, session, context):
        result = run_import(session, context, [
            record_row('objective', 'Mine'),
            record_row('objective', 'Theirs', owner='eve@globex.io'),
        ])

        assert error_codes(result) == [(3, 'owner_email', 'OWNER_NOT_FOUND')]
        assert [o.title for o in session.query(Objective).all()] == ['Mine']

    def test_missing_required_fields(self, session, context):
        result = run_import(session, context, [record_row('objective', '', owner='')])

        assert result.failed_records == 1
        assert error_codes(result) == [(2, 'title', 'FIELD_MISSING')]

    def test_log_keeps_errors(self, session, context, scenario_rows):
        scenario_rows[2]['parent_title'] = 'Launch Campain'

        result = run_import(session, context, scenario_rows)

        log = session.get(ImportLog, result.import_log_id)
        assert log.status == 'failed'
        assert log.successful_records == 2
        assert log.failed_records == 1
        assert log.error_details[0]['code'] == 'PARENT_NOT_FOUND'
        assert log.error_details[0]['row'] == 4


class TestDatabaseFailures:
    """A failed insert only affects its own row."""

    def test_insert_failure_is_isolated(self, session, context, monkeypatch):
        original = HierarchyRepository.create_objective

        def flaky(self, record, owner_id, tenant_id):
            if record.title == 'Broken':
                raise IntegrityError('INSERT INTO objectives', {}, Exception('unique violation'))
            return original(self, record, owner_id, tenant_id)

        monkeypatch.setattr(HierarchyRepository, 'create_objective', flaky)

        result = run_import(session, context, [
            record_row('objective', 'Healthy'),
            record_row('objective', 'Broken'),
            record_row('initiative', 'Child Of Broken', parent_title='Broken'),
            record_row('initiative', 'Child Of Healthy', parent_title='Healthy'),
        ])

        assert result.successful_records == 2
        assert result.failed_records == 2
        assert error_codes(result) == [
            (3, 'database', 'DATABASE_ERROR'),
            (4, 'parent_title', 'PARENT_NOT_FOUND'),
        ]
        assert sorted(o.title for o in session.query(Objective).all()) == ['Healthy']

    def test_unexpected_error_closes_log_and_propagates(self, session, context, scenario_rows, monkeypatch):
        def boom(self, level, position, record):
            raise RuntimeError('resolver exploded')

        monkeypatch.setattr(HierarchyResolver, 'resolve', boom)
        service = HierarchyImportService(session, context)

        with pytest.raises(RuntimeError, match='resolver exploded'):
            service.import_file(make_csv(scenario_rows), 'plan.csv', 'csv')

        log = session.query(ImportLog).one()
        assert log.status == 'failed'
        assert log.successful_records == 0
        assert log.failed_records == 3
        assert log.error_details[-1]['code'] == 'UNEXPECTED_ERROR'
        assert service.state == BatchState.FAILED


class TestFileErrors:
    """Whole-file problems are fatal but still logged."""

    def test_unreadable_workbook(self, session, context):
        service = HierarchyImportService(session, context)

        result = service.import_file(b'not a zip', 'plan.xlsx', 'xlsx')

        assert result.success is False
        assert result.total_records == 0
        assert error_codes(result) == [(0, 'file', 'FILE_UNREADABLE')]
        log = session.get(ImportLog, result.import_log_id)
        assert log.status == 'failed'
        assert log.total_records == 0
        assert service.state == BatchState.FAILED

    def test_unsupported_type(self, session, context):
        result = HierarchyImportService(session, context).import_file(b'{}', 'plan.json', 'json')

        assert result.errors[0].field == 'file'
        assert 'Unsupported file type' in result.errors[0].message

    def test_header_only_file(self, session, context):
        result = run_import(session, context, [])

        assert result.success is True
        assert result.total_records == 0
        assert session.get(ImportLog, result.import_log_id).status == 'completed'


class TestBatchOptions:
    """Record cap, period filter, workbook departments."""

    def test_rows_past_the_cap_are_rejected(self, session, tenant):
        context = ImportContext(tenant_id=tenant['company'].id, uploader_id=tenant['manager'].id,
                                max_records=2)

        result = run_import(session, context, [
            record_row('objective', 'One'),
            record_row('objective', 'Two'),
            record_row('objective', 'Three'),
        ])

        assert result.total_records == 3
        assert result.successful_records == 2
        assert error_codes(result) == [(4, 'records', 'BATCH_LIMIT')]

    def test_period_filter(self, session, context):
        period = PeriodFilter(period_start=date(2024, 1, 1), period_end=date(2024, 3, 31))

        result = run_import(session, context, [
            record_row('objective', 'Q1', start='2024-01-01', end='2024-03-31'),
            record_row('objective', 'Q3', start='2024-07-01', end='2024-09-30'),
        ], period=period)

        assert result.total_records == 1
        assert [o.title for o in session.query(Objective).all()] == ['Q1']

    def test_workbook_sheets_become_departments(self, session, tenant):
        context = ImportContext(tenant_id=tenant['company'].id, uploader_id=tenant['manager'].id,
                                department_mapping={'Mkt': 'Marketing'})

        def sheet(*rows):
            return [list(CANONICAL_COLUMNS)] + [[row[c] for c in CANONICAL_COLUMNS] for row in rows]

        content = make_xlsx({
            'Sales': sheet(record_row('objective', 'Grow Revenue')),
            'Mkt': sheet(record_row('objective', 'Brand Awareness'),
                         record_row('initiative', 'Rebrand', parent_title='Grow Revenue')),
        })

        result = run_import(session, context, content, file_type='xlsx')

        assert result.successful_records == 3
        departments = {o.title: o.department for o in session.query(Objective).all()}
        assert departments == {'Grow Revenue': 'Sales', 'Brand Awareness': 'Marketing'}
        assert session.query(Initiative).one().department == 'Marketing'

    def test_workbook_errors_name_the_sheet(self, session, context):
        content = make_xlsx({
            'Ops': [list(CANONICAL_COLUMNS),
                    [record_row('objective', 'Bad', progress='150')[c] for c in CANONICAL_COLUMNS]],
        })

        result = run_import(session, context, content, file_type='xlsx')

        assert result.errors[0].sheet == 'Ops'
        assert result.errors[0].row == 2


class TestDuplicateTitles:
    """Later duplicates win parent lookups and raise a warning."""

    def test_last_duplicate_wins(self, session, context):
        result = run_import(session, context, [
            record_row('objective', 'Grow'),
            record_row('objective', 'Grow'),
            record_row('initiative', 'Launch', parent_title='Grow'),
        ])

        assert result.success is True
        assert result.successful_records == 3
        assert [(w.row, w.code) for w in result.warnings] == [(3, 'DUPLICATE_TITLE')]

        newest = session.query(Objective).order_by(Objective.id.desc()).first()
        assert session.query(Initiative).one().objective_id == newest.id


class TestPreview:
    """Preview validates without writing."""

    def test_preview_writes_nothing(self, session, context, scenario_rows):
        scenario_rows.append(record_row('objective', 'Bad', progress='150'))
        service = HierarchyImportService(session, context)

        preview = service.preview_file(make_csv(scenario_rows), 'csv')

        assert preview.total_records == 4
        assert preview.valid_records == 3
        assert preview.invalid_records == 1
        assert [r['title'] for r in preview.records] == ['Grow Revenue', 'Launch Campaign', 'Write Copy']
        assert preview.records[0]['row'] == 2
        assert preview.errors[0].field == 'progress'
        assert session.query(Objective).count() == 0
        assert session.query(ImportLog).count() == 0

    def test_preview_is_capped(self, session, context):
        rows = [record_row('objective', f'Goal {i}') for i in range(15)]

        preview = HierarchyImportService(session, context).preview_file(make_csv(rows), 'csv')

        assert preview.valid_records == 15
        assert len(preview.records) == 10

    def test_preview_of_unreadable_file(self, session, context):
        preview = HierarchyImportService(session, context).preview_file(b'garbage', 'xlsx')

        assert preview.total_records == 0
        assert preview.errors[0].code == 'FILE_UNREADABLE'


class TestResultInvariant:
    """Counts always add up."""

    def test_inconsistent_counts_rejected(self):
        with pytest.raises(ValidationError):
            ImportResult(success=True, total_records=3, successful_records=1, failed_records=1)
