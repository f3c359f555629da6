# Nombre de archivo: 20261001_01_claims.py
# Ubicación de archivo: db/alembic/versions/20261001_01_claims.py
# Descripción: Esquema app y tablas de reclamos con sus productos, documentos, comunicaciones y checklists

"""Crear tablas de reclamos"""

from __future__ import annotations

from alembic import op


revision = "20261001_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS app")
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.claims (
            id VARCHAR(64) PRIMARY KEY,
            claim_number VARCHAR(32) NOT NULL,
            client_name VARCHAR(255) NOT NULL,
            client_id VARCHAR(64) NOT NULL,
            creation_date TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            status VARCHAR(32) NOT NULL DEFAULT 'New',
            department VARCHAR(128) NOT NULL DEFAULT '',
            identified_cause VARCHAR(255),
            installed BOOLEAN NOT NULL DEFAULT FALSE,
            installation_date TIMESTAMP WITH TIME ZONE,
            invoice_link VARCHAR(255),
            solution_amount NUMERIC(14, 2) NOT NULL DEFAULT 0,
            claimed_amount NUMERIC(14, 2) NOT NULL DEFAULT 0,
            saved_amount NUMERIC(14, 2) NOT NULL DEFAULT 0,
            description TEXT,
            assigned_to VARCHAR(255),
            last_updated TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_claims_claim_number ON app.claims (claim_number)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_claims_client_name ON app.claims (client_name)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_claims_client_id ON app.claims (client_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_claims_creation_date ON app.claims (creation_date)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_claims_status ON app.claims (status)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.claim_products (
            id VARCHAR(64) PRIMARY KEY,
            claim_id VARCHAR(64) NOT NULL REFERENCES app.claims(id) ON DELETE CASCADE,
            description TEXT NOT NULL DEFAULT '',
            style VARCHAR(128) NOT NULL DEFAULT '',
            color VARCHAR(128) NOT NULL DEFAULT '',
            quantity INTEGER NOT NULL DEFAULT 0,
            claimed_quantity INTEGER NOT NULL DEFAULT 0,
            price_per_sy NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_price NUMERIC(14, 2) NOT NULL DEFAULT 0
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.claim_documents (
            id VARCHAR(64) PRIMARY KEY,
            claim_id VARCHAR(64) NOT NULL REFERENCES app.claims(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            type VARCHAR(16) NOT NULL,
            url TEXT NOT NULL,
            upload_date TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            category VARCHAR(128),
            uploaded_by VARCHAR(255)
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.claim_communications (
            id VARCHAR(64) PRIMARY KEY,
            claim_id VARCHAR(64) NOT NULL REFERENCES app.claims(id) ON DELETE CASCADE,
            date TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            type VARCHAR(16) NOT NULL,
            subject VARCHAR(255),
            content TEXT NOT NULL,
            sender VARCHAR(255) NOT NULL,
            recipients JSONB,
            attachments JSONB
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.claim_checklists (
            id VARCHAR(64) PRIMARY KEY,
            claim_id VARCHAR(64) NOT NULL REFERENCES app.claims(id) ON DELETE CASCADE,
            type VARCHAR(128) NOT NULL
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.claim_checklist_items (
            id VARCHAR(64) PRIMARY KEY,
            checklist_id VARCHAR(64) NOT NULL REFERENCES app.claim_checklists(id) ON DELETE CASCADE,
            position INTEGER NOT NULL DEFAULT 0,
            title VARCHAR(255) NOT NULL,
            completed BOOLEAN NOT NULL DEFAULT FALSE,
            notes TEXT
        )
        """
    )
    for table, column in (
        ("claim_products", "claim_id"),
        ("claim_documents", "claim_id"),
        ("claim_communications", "claim_id"),
        ("claim_checklists", "claim_id"),
        ("claim_checklist_items", "checklist_id"),
    ):
        op.execute(f"CREATE INDEX IF NOT EXISTS ix_{table}_{column} ON app.{table} ({column})")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS app.claim_checklist_items")
    op.execute("DROP TABLE IF EXISTS app.claim_checklists")
    op.execute("DROP TABLE IF EXISTS app.claim_communications")
    op.execute("DROP TABLE IF EXISTS app.claim_documents")
    op.execute("DROP TABLE IF EXISTS app.claim_products")
    op.execute("DROP TABLE IF EXISTS app.claims")
