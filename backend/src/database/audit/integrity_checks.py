"""
WordPress Integrity Checks
==========================

The fixed catalog of referential-integrity rules WordPress itself does not
enforce. Each rule is one aggregate COUNT statement over the core tables;
no rows are ever pulled into Python.

Checks (declaration order is report order):
- postmeta_orphans
- attachments_missing_parent
- revisions_missing_parent
- commentmeta_orphans
- comments_missing_posts
- term_relationships_missing_posts
- term_taxonomy_missing_terms
- term_count_mismatches

Severity hints:
- structural: something a page render or admin screen can trip over
- cosmetic: dead weight that only costs storage and query time
Hints are informational; nothing filters on them.

How to Add a Check:
1. Write a _query_{name}(tables) function returning a SELECT count(*)
2. Append an IntegrityCheck to INTEGRITY_CHECKS
3. Never change the meaning of an existing check; exports are diffed by name
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from sqlalchemy import and_, exists, func, select
from sqlalchemy.sql import Select

from database.schema import WordPressTables
from .data_source import DataAccessError

SEVERITY_COSMETIC = "cosmetic"
SEVERITY_STRUCTURAL = "structural"


@dataclass(frozen=True)
class IntegrityCheck:
    """A named, read-only integrity rule."""

    name: str
    label: str
    description: str
    group: str  # posts, comments, taxonomy
    build_query: Callable[[WordPressTables], Select]
    severity_hint: Optional[str] = None

    def compute(self, source) -> int:
        """
        Count the rows violating this rule.

        Raises:
            DataAccessError: If the underlying query cannot execute
        """
        count = source.count(self.build_query(source.tables), check_name=self.name)
        if count < 0:
            raise DataAccessError(f"{self.name} returned negative count {count}", check_name=self.name)
        return count


# =============================================================================
# QUERY BUILDERS - One function per check
# =============================================================================
# Missing-parent rules use correlated NOT EXISTS rather than NOT IN so a
# NULL in the parent column can't turn the whole predicate UNKNOWN.

def _query_postmeta_orphans(t: WordPressTables) -> Select:
    """postmeta rows whose post_id has no post."""
    pm, p = t.postmeta, t.posts
    return (
        select(func.count())
        .select_from(pm)
        .where(~exists().where(p.c.ID == pm.c.post_id))
    )


def _query_attachments_missing_parent(t: WordPressTables) -> Select:
    """Attachments attached to a post that no longer exists. Unattached (parent 0) is fine."""
    child = t.posts.alias("child")
    parent = t.posts.alias("parent")
    return (
        select(func.count())
        .select_from(child)
        .where(
            and_(
                child.c.post_type == "attachment",
                child.c.post_parent != 0,
                ~exists().where(parent.c.ID == child.c.post_parent),
            )
        )
    )


def _query_revisions_missing_parent(t: WordPressTables) -> Select:
    """Revisions whose parent post is gone. A revision always needs a parent, so 0 counts."""
    child = t.posts.alias("child")
    parent = t.posts.alias("parent")
    return (
        select(func.count())
        .select_from(child)
        .where(
            and_(
                child.c.post_type == "revision",
                ~exists().where(parent.c.ID == child.c.post_parent),
            )
        )
    )


def _query_commentmeta_orphans(t: WordPressTables) -> Select:
    cm, c = t.commentmeta, t.comments
    return (
        select(func.count())
        .select_from(cm)
        .where(~exists().where(c.c.comment_ID == cm.c.comment_id))
    )


def _query_comments_missing_posts(t: WordPressTables) -> Select:
    c, p = t.comments, t.posts
    return (
        select(func.count())
        .select_from(c)
        .where(~exists().where(p.c.ID == c.c.comment_post_ID))
    )


def _query_term_relationships_missing_posts(t: WordPressTables) -> Select:
    tr, p = t.term_relationships, t.posts
    return (
        select(func.count())
        .select_from(tr)
        .where(~exists().where(p.c.ID == tr.c.object_id))
    )


def _query_term_taxonomy_missing_terms(t: WordPressTables) -> Select:
    tt, terms = t.term_taxonomy, t.terms
    return (
        select(func.count())
        .select_from(tt)
        .where(~exists().where(terms.c.term_id == tt.c.term_id))
    )


def _query_term_count_mismatches(t: WordPressTables) -> Select:
    """
    term_taxonomy rows whose cached count differs from the live relationship count.

    Each mismatched row counts once, however far off its counter is.
    """
    tt, tr = t.term_taxonomy, t.term_relationships
    live_count = (
        select(func.count())
        .select_from(tr)
        .where(tr.c.term_taxonomy_id == tt.c.term_taxonomy_id)
        .correlate(tt)
        .scalar_subquery()
    )
    return (
        select(func.count())
        .select_from(tt)
        .where(tt.c["count"] != live_count)
    )


# =============================================================================
# REGISTRY
# =============================================================================

INTEGRITY_CHECKS: Tuple[IntegrityCheck, ...] = (
    IntegrityCheck(
        name="postmeta_orphans",
        label="Orphaned postmeta rows",
        description="Postmeta rows whose post_id points at a post that does not exist",
        group="posts",
        build_query=_query_postmeta_orphans,
        severity_hint=SEVERITY_COSMETIC,
    ),
    IntegrityCheck(
        name="attachments_missing_parent",
        label="Attachments with missing parent",
        description="Attachments with a nonzero post_parent that does not resolve to a post",
        group="posts",
        build_query=_query_attachments_missing_parent,
        severity_hint=SEVERITY_STRUCTURAL,
    ),
    IntegrityCheck(
        name="revisions_missing_parent",
        label="Revisions with missing parent",
        description="Revisions whose post_parent does not resolve to a post",
        group="posts",
        build_query=_query_revisions_missing_parent,
        severity_hint=SEVERITY_COSMETIC,
    ),
    IntegrityCheck(
        name="commentmeta_orphans",
        label="Orphaned commentmeta rows",
        description="Commentmeta rows whose comment_id points at a comment that does not exist",
        group="comments",
        build_query=_query_commentmeta_orphans,
        severity_hint=SEVERITY_COSMETIC,
    ),
    IntegrityCheck(
        name="comments_missing_posts",
        label="Comments linked to missing posts",
        description="Comments whose comment_post_ID points at a post that does not exist",
        group="comments",
        build_query=_query_comments_missing_posts,
        severity_hint=SEVERITY_STRUCTURAL,
    ),
    IntegrityCheck(
        name="term_relationships_missing_posts",
        label="Term relationships missing posts",
        description="Term relationship rows whose object_id points at a post that does not exist",
        group="taxonomy",
        build_query=_query_term_relationships_missing_posts,
        severity_hint=SEVERITY_STRUCTURAL,
    ),
    IntegrityCheck(
        name="term_taxonomy_missing_terms",
        label="Term taxonomy rows missing terms",
        description="Term taxonomy rows whose term_id points at a term that does not exist",
        group="taxonomy",
        build_query=_query_term_taxonomy_missing_terms,
        severity_hint=SEVERITY_STRUCTURAL,
    ),
    IntegrityCheck(
        name="term_count_mismatches",
        label="Term count mismatches",
        description="Term taxonomy rows whose cached count differs from the live number of relationships",
        group="taxonomy",
        build_query=_query_term_count_mismatches,
        severity_hint=SEVERITY_STRUCTURAL,
    ),
)


def list_checks() -> Tuple[IntegrityCheck, ...]:
    """Return every registered check in declaration order."""
    return INTEGRITY_CHECKS


def get_check(name: str) -> IntegrityCheck:
    """Look up a check by name."""
    for check in INTEGRITY_CHECKS:
        if check.name == name:
            return check
    raise ValueError(f"Unknown integrity check: {name}")


def select_checks(names: Iterable[str]) -> Tuple[IntegrityCheck, ...]:
    """
    Return the named checks in registry order, whatever order they were asked for in.

    Raises:
        ValueError: If any name is not a registered check
    """
    wanted = set(names)
    unknown = sorted(wanted - {check.name for check in INTEGRITY_CHECKS})
    if unknown:
        raise ValueError(f"Unknown integrity check: {', '.join(unknown)}")
    return tuple(check for check in INTEGRITY_CHECKS if check.name in wanted)
