"""
WordPress Core Tables
=====================

posts, postmeta, comments, commentmeta, terms, term_taxonomy,
term_relationships

Only the columns the integrity checks read (plus a few that make test
fixtures realistic) are declared. The audit never issues DDL against a live
site; `metadata.create_all()` is only used to build throwaway test databases.

WordPress declares no foreign keys. That is the whole reason the audit
exists, so none are declared here either.

Database: MySQL/MariaDB (any SQLAlchemy dialect works for the checks)
"""

from dataclasses import dataclass

from sqlalchemy import (
    Table,
    Column,
    BigInteger,
    Integer,
    String,
    Text,
    DateTime,
    MetaData,
    Index,
)

from .metadata import new_metadata

# BIGINT UNSIGNED in MySQL; SQLite only autoincrements INTEGER PRIMARY KEY
WPId = BigInteger().with_variant(Integer, "sqlite")


@dataclass(frozen=True)
class WordPressTables:
    """Table objects for one WordPress install, bound to a table prefix."""

    prefix: str
    metadata: MetaData
    posts: Table
    postmeta: Table
    comments: Table
    commentmeta: Table
    terms: Table
    term_taxonomy: Table
    term_relationships: Table


def build_wordpress_tables(prefix: str = "wp_") -> WordPressTables:
    """
    Build the core WordPress table definitions for a table prefix.

    Args:
        prefix: $table_prefix from wp-config.php (e.g. "wp_", "wp_2_")

    Returns:
        WordPressTables with a fresh MetaData
    """
    metadata = new_metadata()

    # =========================================================================
    # POSTS
    # =========================================================================
    # Posts, pages, attachments and revisions all live here.
    #   - post_type: 'attachment' and 'revision' are the types the checks target
    #   - post_parent: 0 means "no parent"
    # =========================================================================
    posts = Table(
        f"{prefix}posts",
        metadata,
        Column("ID", WPId, primary_key=True, autoincrement=True),
        Column("post_author", WPId, nullable=False, server_default="0"),
        Column("post_date", DateTime, nullable=True),
        Column("post_title", Text, nullable=False, server_default=""),
        Column("post_status", String(20), nullable=False, server_default="publish"),
        Column("post_name", String(200), nullable=False, server_default=""),
        Column("post_parent", WPId, nullable=False, server_default="0"),
        Column("post_type", String(20), nullable=False, server_default="post"),
        Column("comment_count", BigInteger, nullable=False, server_default="0"),
        Index(f"{prefix}posts_post_parent", "post_parent"),
        Index(f"{prefix}posts_type_status_date", "post_type", "post_status", "post_date", "ID"),
    )

    postmeta = Table(
        f"{prefix}postmeta",
        metadata,
        Column("meta_id", WPId, primary_key=True, autoincrement=True),
        Column("post_id", WPId, nullable=False, server_default="0"),
        Column("meta_key", String(255), nullable=True),
        Column("meta_value", Text, nullable=True),
        Index(f"{prefix}postmeta_post_id", "post_id"),
    )

    # =========================================================================
    # COMMENTS
    # =========================================================================
    comments = Table(
        f"{prefix}comments",
        metadata,
        Column("comment_ID", WPId, primary_key=True, autoincrement=True),
        Column("comment_post_ID", WPId, nullable=False, server_default="0"),
        Column("comment_author", Text, nullable=False, server_default=""),
        Column("comment_date", DateTime, nullable=True),
        Column("comment_content", Text, nullable=False, server_default=""),
        Column("comment_approved", String(20), nullable=False, server_default="1"),
        Column("comment_type", String(20), nullable=False, server_default="comment"),
        Column("comment_parent", WPId, nullable=False, server_default="0"),
        Index(f"{prefix}comments_comment_post_ID", "comment_post_ID"),
    )

    commentmeta = Table(
        f"{prefix}commentmeta",
        metadata,
        Column("meta_id", WPId, primary_key=True, autoincrement=True),
        Column("comment_id", WPId, nullable=False, server_default="0"),
        Column("meta_key", String(255), nullable=True),
        Column("meta_value", Text, nullable=True),
        Index(f"{prefix}commentmeta_comment_id", "comment_id"),
    )

    # =========================================================================
    # TAXONOMY
    # =========================================================================
    # term_taxonomy.count is a denormalized counter that WordPress updates
    # from application code; it drifts when relationships change behind its back.
    # =========================================================================
    terms = Table(
        f"{prefix}terms",
        metadata,
        Column("term_id", WPId, primary_key=True, autoincrement=True),
        Column("name", String(200), nullable=False, server_default=""),
        Column("slug", String(200), nullable=False, server_default=""),
        Column("term_group", BigInteger, nullable=False, server_default="0"),
    )

    term_taxonomy = Table(
        f"{prefix}term_taxonomy",
        metadata,
        Column("term_taxonomy_id", WPId, primary_key=True, autoincrement=True),
        Column("term_id", WPId, nullable=False, server_default="0"),
        Column("taxonomy", String(32), nullable=False, server_default=""),
        Column("description", Text, nullable=False, server_default=""),
        Column("parent", WPId, nullable=False, server_default="0"),
        Column("count", BigInteger, nullable=False, server_default="0"),
        Index(f"{prefix}term_taxonomy_taxonomy", "taxonomy"),
    )

    term_relationships = Table(
        f"{prefix}term_relationships",
        metadata,
        Column("object_id", WPId, primary_key=True, server_default="0"),
        Column("term_taxonomy_id", WPId, primary_key=True, server_default="0"),
        Column("term_order", Integer, nullable=False, server_default="0"),
        Index(f"{prefix}term_relationships_term_taxonomy_id", "term_taxonomy_id"),
    )

    return WordPressTables(
        prefix=prefix,
        metadata=metadata,
        posts=posts,
        postmeta=postmeta,
        comments=comments,
        commentmeta=commentmeta,
        terms=terms,
        term_taxonomy=term_taxonomy,
        term_relationships=term_relationships,
    )
