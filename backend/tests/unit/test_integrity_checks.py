"""
Unit tests for the integrity check registry.

Tests the registry contract and the generated SQL without a database.
"""

import pytest
from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock

from sqlalchemy.dialects import mysql, sqlite

from database.audit import DataAccessError, INTEGRITY_CHECKS, get_check, list_checks, select_checks
from database.audit.integrity_checks import SEVERITY_COSMETIC, SEVERITY_STRUCTURAL
from database.schema import build_wordpress_tables

EXPECTED_ORDER = [
    "postmeta_orphans",
    "attachments_missing_parent",
    "revisions_missing_parent",
    "commentmeta_orphans",
    "comments_missing_posts",
    "term_relationships_missing_posts",
    "term_taxonomy_missing_terms",
    "term_count_mismatches",
]


class TestRegistry:
    """Tests for list_checks() and the check definitions."""

    def test_declaration_order(self):
        assert [check.name for check in list_checks()] == EXPECTED_ORDER

    def test_list_checks_is_stable(self):
        assert list_checks() is list_checks()
        assert list_checks() is INTEGRITY_CHECKS

    def test_names_are_unique(self):
        names = [check.name for check in list_checks()]
        assert len(names) == len(set(names))

    def test_every_check_is_described(self):
        for check in list_checks():
            assert check.description
            assert check.label
            assert check.group in ("posts", "comments", "taxonomy")
            assert check.severity_hint in (SEVERITY_COSMETIC, SEVERITY_STRUCTURAL)

    def test_checks_are_immutable(self):
        check = list_checks()[0]
        with pytest.raises(FrozenInstanceError):
            check.name = "renamed"


class TestLookup:
    """Tests for get_check() and select_checks()."""

    def test_get_check_by_name(self):
        assert get_check("term_count_mismatches").label == "Term count mismatches"

    def test_get_check_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown integrity check"):
            get_check("users_without_roles")

    def test_select_checks_keeps_registry_order(self):
        selected = select_checks(["term_count_mismatches", "postmeta_orphans"])
        assert [c.name for c in selected] == ["postmeta_orphans", "term_count_mismatches"]

    def test_select_checks_rejects_unknown(self):
        with pytest.raises(ValueError, match="bogus"):
            select_checks(["postmeta_orphans", "bogus"])


class TestGeneratedSql:
    """Each check compiles to a single aggregate statement."""

    @pytest.fixture
    def tables(self):
        return build_wordpress_tables("wp_")

    @pytest.mark.parametrize("check", list_checks(), ids=lambda c: c.name)
    def test_check_is_single_count_statement(self, tables, check):
        sql = str(check.build_query(tables).compile(dialect=sqlite.dialect()))

        assert sql.lstrip().upper().startswith("SELECT COUNT(*)")
        assert "INSERT" not in sql.upper()
        assert "UPDATE" not in sql.upper()
        assert "DELETE" not in sql.upper()

    @pytest.mark.parametrize("name", [
        "postmeta_orphans",
        "attachments_missing_parent",
        "revisions_missing_parent",
        "commentmeta_orphans",
        "comments_missing_posts",
        "term_relationships_missing_posts",
        "term_taxonomy_missing_terms",
    ])
    def test_missing_parent_checks_use_not_exists(self, tables, name):
        sql = str(get_check(name).build_query(tables).compile(dialect=mysql.dialect()))

        assert "NOT" in sql
        assert "EXISTS" in sql
        assert " NOT IN " not in sql

    def test_queries_follow_table_prefix(self):
        tables = build_wordpress_tables("wp_7_")
        sql = str(get_check("comments_missing_posts").build_query(tables).compile(dialect=mysql.dialect()))

        assert "wp_7_comments" in sql
        assert "wp_7_posts" in sql

    def test_attachment_check_excludes_unattached(self, tables):
        query = get_check("attachments_missing_parent").build_query(tables)
        sql = str(query.compile(dialect=mysql.dialect(), compile_kwargs={"literal_binds": True}))

        assert "'attachment'" in sql
        assert "post_parent != 0" in sql


class TestCompute:
    """Tests for IntegrityCheck.compute() with a mocked data source."""

    def test_compute_passes_check_name_to_source(self):
        source = MagicMock()
        source.tables = build_wordpress_tables("wp_")
        source.count.return_value = 4

        result = get_check("commentmeta_orphans").compute(source)

        assert result == 4
        assert source.count.call_args.kwargs["check_name"] == "commentmeta_orphans"

    def test_compute_propagates_data_access_error(self):
        source = MagicMock()
        source.tables = build_wordpress_tables("wp_")
        source.count.side_effect = DataAccessError("permission denied", check_name="postmeta_orphans")

        with pytest.raises(DataAccessError, match="permission denied"):
            get_check("postmeta_orphans").compute(source)

    def test_compute_rejects_negative_count(self):
        source = MagicMock()
        source.tables = build_wordpress_tables("wp_")
        source.count.return_value = -1

        with pytest.raises(DataAccessError, match="negative"):
            get_check("postmeta_orphans").compute(source)
