"""
Tests for record normalization: defaults, coercions and required fields.
"""

from datetime import date, datetime

import pytest

from services.errors import FieldMissingError
from services.file_parser import RawRow
from services.import_schema import ImportContext
from services.record_normalizer import RecordNormalizer


def raw(values, sheet=None, row=2):
    base = {
        'title': 'Grow Revenue',
        'owner_email': 'ana@acme.io',
        'start_date': '2024-01-01',
        'end_date': '2024-03-31',
    }
    base.update(values)
    return RawRow(row=row, values=base, sheet=sheet)


@pytest.fixture
def normalizer():
    return RecordNormalizer(ImportContext(tenant_id=1))


class TestDefaults:
    """Blank optional fields get defaults."""

    def test_minimal_row(self, normalizer):
        fields = normalizer.normalize(raw({}))

        assert fields == {
            'type': 'objective',
            'title': 'Grow Revenue',
            'description': '',
            'owner_email': 'ana@acme.io',
            'department': '',
            'status': 'not_started',
            'progress': 0,
            'start_date': date(2024, 1, 1),
            'end_date': date(2024, 3, 31),
            'parent_title': None,
        }

    def test_headers_are_canonicalized(self, normalizer):
        row = RawRow(row=2, values={
            'Type': 'Initiative',
            'Title': 'Launch',
            'Owner Email': 'ANA@Acme.io',
            'Start Date': '2024-01-15',
            'End  Date': '2024-02-28',
            'Parent Title': 'Grow Revenue',
            'Unrelated Column': 'ignored',
        })

        fields = normalizer.normalize(row)

        assert fields['type'] == 'initiative'
        assert fields['owner_email'] == 'ana@acme.io'
        assert fields['parent_title'] == 'Grow Revenue'
        assert 'unrelated_column' not in fields


class TestDepartment:
    """Department comes from the row, then the sheet, then the mapping table."""

    def test_sheet_name_is_fallback(self, normalizer):
        assert normalizer.normalize(raw({}, sheet='Marketing'))['department'] == 'Marketing'

    def test_row_value_wins_over_sheet(self, normalizer):
        fields = normalizer.normalize(raw({'department': 'Finance'}, sheet='Marketing'))
        assert fields['department'] == 'Finance'

    def test_mapping_applies(self):
        context = ImportContext(tenant_id=1, department_mapping={'Mkt': 'Marketing'})
        normalizer = RecordNormalizer(context)

        assert normalizer.normalize(raw({}, sheet='Mkt'))['department'] == 'Marketing'
        assert normalizer.normalize(raw({'department': 'Mkt'}))['department'] == 'Marketing'
        assert normalizer.normalize(raw({'department': 'Ops'}))['department'] == 'Ops'


class TestCoercion:
    """Loosely typed spreadsheet values."""

    @pytest.mark.parametrize('value,expected', [
        ('en_progreso', 'in_progress'),
        ('En Progreso', 'in_progress'),
        ('active', 'in_progress'),
        ('done', 'completed'),
        ('no_iniciado', 'not_started'),
        ('pausado', 'paused'),
        ('completed', 'completed'),
    ])
    def test_status_aliases(self, normalizer, value, expected):
        assert normalizer.normalize(raw({'status': value}))['status'] == expected

    def test_unknown_status_passes_through(self, normalizer):
        assert normalizer.normalize(raw({'status': 'Blocked'}))['status'] == 'blocked'

    @pytest.mark.parametrize('value,expected', [
        ('50', 50),
        ('50%', 50),
        (75, 75),
        (75.0, 75),
        ('', 0),
        (None, 0),
        ('150', 150),
    ])
    def test_progress(self, normalizer, value, expected):
        assert normalizer.normalize(raw({'progress': value}))['progress'] == expected

    @pytest.mark.parametrize('value', [100.4, '100.4', '99.5%', -0.5])
    def test_fractional_progress_passes_through(self, normalizer, value):
        progress = normalizer.normalize(raw({'progress': value}))['progress']
        assert progress == float(str(value).rstrip('%'))

    def test_unparseable_progress_passes_through(self, normalizer):
        assert normalizer.normalize(raw({'progress': 'half'}))['progress'] == 'half'

    def test_dates(self, normalizer):
        fields = normalizer.normalize(raw({
            'start_date': datetime(2024, 1, 1, 9, 0),
            'end_date': '31/03/2024',
        }))
        assert fields['start_date'] == date(2024, 1, 1)
        assert type(fields['start_date']) is date
        assert fields['end_date'] == date(2024, 3, 31)

    def test_bad_date_passes_through(self, normalizer):
        assert normalizer.normalize(raw({'end_date': 'eventually'}))['end_date'] == 'eventually'

    def test_html_is_stripped(self, normalizer):
        fields = normalizer.normalize(raw({
            'title': '<b>Grow</b> Revenue',
            'description': '<script>alert(1)</script>Plan',
        }))
        assert fields['title'] == 'Grow Revenue'
        assert fields['description'] == 'alert(1)Plan'

    def test_spanish_type_names(self, normalizer):
        assert normalizer.normalize(raw({'type': 'Actividad'}))['type'] == 'activity'


class TestRequiredFields:
    """Missing core fields exclude the row."""

    def test_missing_title(self, normalizer):
        with pytest.raises(FieldMissingError) as exc_info:
            normalizer.normalize(raw({'title': '  '}))

        assert exc_info.value.field == 'title'
        assert exc_info.value.code == 'FIELD_MISSING'

    def test_message_lists_all_missing(self, normalizer):
        with pytest.raises(FieldMissingError) as exc_info:
            normalizer.normalize(raw({'owner_email': '', 'end_date': None}))

        assert exc_info.value.field == 'owner_email'
        assert 'owner_email' in exc_info.value.message
        assert 'end_date' in exc_info.value.message
