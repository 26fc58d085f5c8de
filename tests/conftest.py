"""
Pytest configuration and fixtures for hierarchy import tests.
"""

import csv
import io
import pytest
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models import Base, Company, Profile
from services.field_utils import CANONICAL_COLUMNS
from services.import_schema import ImportContext


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    eng = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    """Create a new database session for a test."""
    Session = sessionmaker(bind=engine, autoflush=False)
    sess = Session()
    yield sess
    sess.close()


@pytest.fixture
def tenant(session):
    """
    Two companies with profiles.

    Returns a dict with the main company, a manager, an employee and a
    profile belonging to another company.
    """
    acme = Company(name='Acme', slug='acme')
    globex = Company(name='Globex', slug='globex')
    session.add_all([acme, globex])
    session.flush()

    manager = Profile(email='ana@acme.io', full_name='Ana Ruiz', role='manager',
                      department='Sales', company_id=acme.id)
    employee = Profile(email='luis@acme.io', full_name='Luis Vega', role='employee',
                       department='Sales', company_id=acme.id)
    outsider = Profile(email='eve@globex.io', full_name='Eve Stone', role='corporate',
                       company_id=globex.id)
    session.add_all([manager, employee, outsider])
    session.commit()

    return {
        'company': acme,
        'other_company': globex,
        'manager': manager,
        'employee': employee,
        'outsider': outsider,
    }


@pytest.fixture
def context(tenant):
    """Import context for the manager of the main company."""
    return ImportContext(tenant_id=tenant['company'].id, uploader_id=tenant['manager'].id)


def make_csv(rows, header=None) -> bytes:
    """Build CSV bytes from dict rows keyed by canonical column names."""
    header = header or CANONICAL_COLUMNS
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=header, extrasaction='ignore')
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode('utf-8')


def make_xlsx(sheets) -> bytes:
    """
    Build workbook bytes.

    Args:
        sheets: {sheet_name: [header_row, data_row, ...]}
    """
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def record_row(type_, title, parent_title='', start='2024-01-15', end='2024-02-28',
               owner='ana@acme.io', **extra):
    """One template row as a dict."""
    row = {
        'type': type_,
        'title': title,
        'description': '',
        'owner_email': owner,
        'department': '',
        'status': '',
        'progress': '',
        'start_date': start,
        'end_date': end,
        'parent_title': parent_title,
    }
    row.update(extra)
    return row


@pytest.fixture
def scenario_rows():
    """Objective -> initiative -> activity chain."""
    return [
        record_row('objective', 'Grow Revenue', start='2024-01-01', end='2024-03-31',
                   status='in_progress', progress='50', department='Sales'),
        record_row('initiative', 'Launch Campaign', parent_title='Grow Revenue'),
        record_row('activity', 'Write Copy', parent_title='Launch Campaign',
                   start='2024-01-15', end='2024-01-20'),
    ]
