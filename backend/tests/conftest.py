"""
WordPress Database Sanity Check - pytest Configuration and Fixtures

Provides shared test fixtures for:
- An in-memory SQLite WordPress database built from the real table definitions
- Helpers for inserting posts, comments, meta and taxonomy rows
- A fake data source for runner tests that need faults or delays

SQLite stands in for MySQL here: every check is a plain SQLAlchemy Core
COUNT statement, so the dialect difference does not matter for correctness.
"""

import time

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool

from database.schema import build_wordpress_tables
from database.audit import DataAccessError, SqlDataSource, list_checks


# ============================================================================
# SQLite WordPress Database
# ============================================================================

class WordPressFixture:
    """
    Thin helper for populating a throwaway WordPress database.

    IDs are explicit so tests can point rows at parents that don't exist.
    """

    def __init__(self, engine, tables):
        self.engine = engine
        self.tables = tables

    def _insert(self, table, **values):
        with self.engine.begin() as conn:
            conn.execute(insert(table).values(**values))

    def add_post(self, post_id, post_type='post', post_parent=0, **values):
        self._insert(self.tables.posts, ID=post_id, post_type=post_type, post_parent=post_parent, **values)
        return post_id

    def add_postmeta(self, post_id, meta_key='_edit_lock', meta_value='1'):
        self._insert(self.tables.postmeta, post_id=post_id, meta_key=meta_key, meta_value=meta_value)

    def add_comment(self, comment_id, post_id, **values):
        self._insert(self.tables.comments, comment_ID=comment_id, comment_post_ID=post_id, **values)
        return comment_id

    def add_commentmeta(self, comment_id, meta_key='akismet_result', meta_value='false'):
        self._insert(self.tables.commentmeta, comment_id=comment_id, meta_key=meta_key, meta_value=meta_value)

    def add_term(self, term_id, name='Uncategorized'):
        self._insert(self.tables.terms, term_id=term_id, name=name, slug=name.lower())
        return term_id

    def add_term_taxonomy(self, term_taxonomy_id, term_id, taxonomy='category', count=0):
        self._insert(
            self.tables.term_taxonomy,
            term_taxonomy_id=term_taxonomy_id,
            term_id=term_id,
            taxonomy=taxonomy,
            count=count,
        )
        return term_taxonomy_id

    def add_term_relationship(self, object_id, term_taxonomy_id):
        self._insert(self.tables.term_relationships, object_id=object_id, term_taxonomy_id=term_taxonomy_id)

    def add_consistent_site(self):
        """A small site with no integrity problems at all."""
        self.add_post(1, post_type='post')
        self.add_post(2, post_type='page')
        self.add_post(3, post_type='attachment', post_parent=1)
        self.add_post(4, post_type='attachment', post_parent=0)
        self.add_post(5, post_type='revision', post_parent=1)
        self.add_postmeta(1)
        self.add_postmeta(3, meta_key='_wp_attached_file', meta_value='2026/01/photo.jpg')
        self.add_comment(1, post_id=1)
        self.add_commentmeta(1)
        self.add_term(1, name='Uncategorized')
        self.add_term(2, name='News')
        self.add_term_taxonomy(1, term_id=1, count=1)
        self.add_term_taxonomy(2, term_id=2, count=2)
        self.add_term_relationship(1, 1)
        self.add_term_relationship(1, 2)
        self.add_term_relationship(2, 2)


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine shared across connections (StaticPool)."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def wp_tables():
    return build_wordpress_tables("wp_")


@pytest.fixture
def wp_fixture_factory():
    """Factory: create the core tables on an engine and wrap it in a WordPressFixture."""
    def _make(engine, tables):
        tables.metadata.create_all(engine)
        return WordPressFixture(engine, tables)
    return _make


@pytest.fixture
def wp_db(sqlite_engine, wp_tables, wp_fixture_factory):
    """Empty WordPress database with all core tables created."""
    return wp_fixture_factory(sqlite_engine, wp_tables)


@pytest.fixture
def wp_source(wp_db):
    """SqlDataSource over the wp_db fixture."""
    return SqlDataSource(wp_db.engine, tables=wp_db.tables)


# ============================================================================
# Fake Data Source
# ============================================================================

class FakeDataSource:
    """
    Data source returning canned counts per check name.

    Args:
        counts: check name -> count (missing names return 0)
        fail_on: check names that raise DataAccessError
        delays: check name -> seconds to sleep before answering
    """

    def __init__(self, counts=None, fail_on=(), delays=None):
        self.tables = build_wordpress_tables("wp_")
        self.counts = counts or {}
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.calls = []

    def count(self, statement, check_name=None):
        self.calls.append(check_name)
        delay = self.delays.get(check_name, 0)
        if delay:
            time.sleep(delay)
        if check_name in self.fail_on:
            raise DataAccessError(f"Table missing for {check_name}", check_name=check_name)
        return self.counts.get(check_name, 0)


@pytest.fixture
def fake_source():
    """Factory fixture: fake_source(counts=..., fail_on=..., delays=...)."""
    return FakeDataSource


@pytest.fixture
def check_names():
    """Registered check names in declaration order."""
    return [check.name for check in list_checks()]
