"""Search schema: users, videos, transcript_chunks, content_sources, content_items, topic clusters.

Revision ID: 001
Revises: None
Create Date: 2026-01-01 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMS = 1536


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text),
        sa.Column("email", sa.Text),
        sa.Column("image", sa.Text),
    )

    op.create_table(
        "videos",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("author_id", sa.Text, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("transcript", sa.Text),
        sa.Column("thumbnail_url", sa.Text),
        sa.Column("duration", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "transcript_chunks",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("video_id", sa.Text, sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("chunk_index", sa.Integer, nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("embedding", Vector(EMBEDDING_DIMS)),
        sa.Column("timestamp_start", sa.Float),
        sa.Column("timestamp_end", sa.Float),
    )

    op.create_table(
        "content_sources",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
    )

    op.create_table(
        "content_items",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column(
            "source_id", sa.Text, sa.ForeignKey("content_sources.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("external_id", sa.Text, nullable=False),
        sa.Column("title", sa.Text),
        sa.Column("content", sa.Text),
        sa.Column("author_id", sa.Text, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("author_name", sa.Text),
        sa.Column("created_at_source", sa.DateTime(timezone=True)),
        sa.Column("metadata", JSONB, server_default="{}"),
        sa.Column("embedding_vector", Vector(EMBEDDING_DIMS)),
        sa.Column("search_text", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("source_id", "external_id", name="uq_content_items_external"),
    )

    op.create_table(
        "topic_clusters",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
    )

    op.create_table(
        "topic_cluster_members",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "cluster_id", sa.Text, sa.ForeignKey("topic_clusters.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "content_item_id", sa.Text, sa.ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("similarity_score", sa.Float, nullable=False),
        sa.Column("is_primary", sa.Boolean, server_default=sa.false()),
    )

    # Indexes
    op.create_index("idx_videos_org_created", "videos", ["organization_id", "created_at"])
    op.create_index("idx_transcript_chunks_video_id", "transcript_chunks", ["video_id"])
    op.create_index("idx_transcript_chunks_org", "transcript_chunks", ["organization_id"])
    op.create_index("idx_content_sources_org_type", "content_sources", ["organization_id", "type"])
    op.create_index("idx_content_items_org_created", "content_items", ["organization_id", "created_at_source"])
    op.create_index("idx_content_items_source_id", "content_items", ["source_id"])
    op.create_index("idx_content_items_type", "content_items", ["type"])
    op.create_index("idx_topic_clusters_org", "topic_clusters", ["organization_id"])
    op.create_index("idx_topic_cluster_members_cluster", "topic_cluster_members", ["cluster_id"])
    op.create_index("idx_topic_cluster_members_item", "topic_cluster_members", ["content_item_id"])

    # Approximate nearest-neighbour indexes for cosine distance
    op.execute(
        "CREATE INDEX idx_transcript_chunks_embedding ON transcript_chunks "
        "USING hnsw (embedding vector_cosine_ops)"
    )
    op.execute(
        "CREATE INDEX idx_content_items_embedding ON content_items "
        "USING hnsw (embedding_vector vector_cosine_ops)"
    )


def downgrade() -> None:
    op.drop_table("topic_cluster_members")
    op.drop_table("topic_clusters")
    op.drop_table("content_items")
    op.drop_table("content_sources")
    op.drop_table("transcript_chunks")
    op.drop_table("videos")
    op.drop_table("users")
