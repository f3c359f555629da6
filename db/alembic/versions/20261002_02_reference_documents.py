# Nombre de archivo: 20261002_02_reference_documents.py
# Ubicación de archivo: db/alembic/versions/20261002_02_reference_documents.py
# Descripción: Documentos de referencia con embeddings (pgvector) y función de similitud

"""Crear reference_documents y app.match_documents"""

from __future__ import annotations

from alembic import op


revision = "20261002_02"
down_revision = "20261002_01"
branch_labels = None
depends_on = None

# Dimensión de text-embedding-ada-002
EMBEDDING_DIM = 1536


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")
    op.execute(
        f"""
        CREATE TABLE IF NOT EXISTS app.reference_documents (
            id BIGSERIAL PRIMARY KEY,
            content TEXT NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
            embedding vector({EMBEDDING_DIM}) NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
        """
    )
    op.execute(
        f"""
        CREATE OR REPLACE FUNCTION app.match_documents(
            query_embedding vector({EMBEDDING_DIM}),
            match_threshold FLOAT,
            match_count INT
        )
        RETURNS TABLE (id BIGINT, content TEXT, metadata JSONB, similarity FLOAT)
        LANGUAGE sql STABLE
        AS $$
            SELECT d.id, d.content, d.metadata, 1 - (d.embedding <=> query_embedding) AS similarity
            FROM app.reference_documents d
            WHERE 1 - (d.embedding <=> query_embedding) > match_threshold
            ORDER BY d.embedding <=> query_embedding
            LIMIT match_count
        $$
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS app.match_documents(vector, FLOAT, INT)")
    op.execute("DROP TABLE IF EXISTS app.reference_documents")
