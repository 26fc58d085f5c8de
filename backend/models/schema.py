"""
SQLAlchemy models for the hierarchy import system.

This module defines the tenant, profile and three-level hierarchy tables
(objectives, initiatives, activities), matching the schema defined in
Alembic migrations.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Date, TIMESTAMP, JSON,
    ForeignKey, CheckConstraint, Index, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')

STATUS_CHECK = "status IN ('not_started', 'in_progress', 'completed', 'paused')"
PROGRESS_CHECK = 'progress >= 0 AND progress <= 100'


class Company(Base):
    """Tenant: isolation boundary for every lookup and creation."""

    __tablename__ = 'companies'
    __table_args__ = (
        {'comment': 'Tenant organizations'},
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    settings = Column(JSONType, server_default='{}', nullable=False)
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    profiles = relationship('Profile', back_populates='company')

    def __repr__(self):
        return f"<Company(id={self.id}, slug='{self.slug}')>"


class Profile(Base):
    """A user profile inside a tenant; owners are resolved by email."""

    __tablename__ = 'profiles'
    __table_args__ = (
        CheckConstraint(
            "role IN ('corporate', 'manager', 'employee')",
            name='profiles_role_check'
        ),
        Index('idx_profiles_company_email', 'company_id', 'email'),
        {'comment': 'User profiles scoped to a company'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    email = Column(String(255), nullable=False, comment='Lower-cased login email')
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), server_default='employee', nullable=False)
    department = Column(String(100), nullable=True)
    company_id = Column(
        Integer,
        ForeignKey('companies.id', ondelete='CASCADE'),
        nullable=False
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    company = relationship('Company', back_populates='profiles')

    def __repr__(self):
        return f"<Profile(id={self.id}, email='{self.email}', role='{self.role}')>"


class Objective(Base):
    """Top level of the hierarchy."""

    __tablename__ = 'objectives'
    __table_args__ = (
        CheckConstraint(STATUS_CHECK, name='objectives_status_check'),
        CheckConstraint(PROGRESS_CHECK, name='objectives_progress_check'),
        CheckConstraint('start_date < end_date', name='objectives_dates_check'),
        Index('idx_objectives_company_title', 'company_id', 'title'),
        {'comment': 'Strategic objectives'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    department = Column(String(100), nullable=True)
    status = Column(String(20), server_default='not_started', nullable=False)
    progress = Column(Integer, server_default='0', nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    owner_id = Column(Integer, ForeignKey('profiles.id'), nullable=False)
    company_id = Column(
        Integer,
        ForeignKey('companies.id', ondelete='CASCADE'),
        nullable=False
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    initiatives = relationship('Initiative', back_populates='objective', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Objective(id={self.id}, title='{self.title}')>"


class Initiative(Base):
    """Second level: advances exactly one objective."""

    __tablename__ = 'initiatives'
    __table_args__ = (
        CheckConstraint(STATUS_CHECK, name='initiatives_status_check'),
        CheckConstraint(PROGRESS_CHECK, name='initiatives_progress_check'),
        CheckConstraint('start_date < end_date', name='initiatives_dates_check'),
        Index('idx_initiatives_company_title', 'company_id', 'title'),
        Index('idx_initiatives_objective', 'objective_id'),
        {'comment': 'Initiatives under an objective'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    department = Column(String(100), nullable=True)
    status = Column(String(20), server_default='not_started', nullable=False)
    progress = Column(Integer, server_default='0', nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    objective_id = Column(
        Integer,
        ForeignKey('objectives.id', ondelete='CASCADE'),
        nullable=False
    )
    owner_id = Column(Integer, ForeignKey('profiles.id'), nullable=False)
    company_id = Column(
        Integer,
        ForeignKey('companies.id', ondelete='CASCADE'),
        nullable=False
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    objective = relationship('Objective', back_populates='initiatives')
    activities = relationship('Activity', back_populates='initiative', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Initiative(id={self.id}, title='{self.title}', objective_id={self.objective_id})>"


class Activity(Base):
    """Leaf level: a concrete activity under an initiative."""

    __tablename__ = 'activities'
    __table_args__ = (
        CheckConstraint(STATUS_CHECK, name='activities_status_check'),
        CheckConstraint(PROGRESS_CHECK, name='activities_progress_check'),
        CheckConstraint('start_date < end_date', name='activities_dates_check'),
        Index('idx_activities_company_title', 'company_id', 'title'),
        Index('idx_activities_initiative', 'initiative_id'),
        {'comment': 'Activities under an initiative'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    department = Column(String(100), nullable=True)
    status = Column(String(20), server_default='not_started', nullable=False)
    progress = Column(Integer, server_default='0', nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    initiative_id = Column(
        Integer,
        ForeignKey('initiatives.id', ondelete='CASCADE'),
        nullable=False
    )
    owner_id = Column(Integer, ForeignKey('profiles.id'), nullable=False)
    company_id = Column(
        Integer,
        ForeignKey('companies.id', ondelete='CASCADE'),
        nullable=False
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    initiative = relationship('Initiative', back_populates='activities')

    def __repr__(self):
        return f"<Activity(id={self.id}, title='{self.title}', initiative_id={self.initiative_id})>"
