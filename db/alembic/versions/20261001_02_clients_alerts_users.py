# Nombre de archivo: 20261001_02_clients_alerts_users.py
# Ubicación de archivo: db/alembic/versions/20261001_02_clients_alerts_users.py
# Descripción: Tablas de clientes, alertas y usuarios web

"""Crear tablas clients, alerts y web_users"""

from __future__ import annotations

from alembic import op


revision = "20261001_02"
down_revision = "20261001_01"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.clients (
            id VARCHAR(64) PRIMARY KEY,
            client_code VARCHAR(16) NOT NULL UNIQUE,
            client_name VARCHAR(255) NOT NULL,
            email VARCHAR(255) NOT NULL
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_clients_email ON app.clients (lower(email))")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.alerts (
            id VARCHAR(64) PRIMARY KEY,
            user_id VARCHAR(255),
            claim_id VARCHAR(64) REFERENCES app.claims(id) ON DELETE SET NULL,
            message TEXT NOT NULL,
            type VARCHAR(16) NOT NULL DEFAULT 'info',
            read BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_alerts_user_created ON app.alerts (user_id, created_at)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.web_users (
            id SERIAL PRIMARY KEY,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            role VARCHAR(32) NOT NULL DEFAULT 'user',
            full_name VARCHAR(255) NOT NULL DEFAULT '',
            avatar_url TEXT,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
        """
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS app.web_users")
    op.execute("DROP INDEX IF EXISTS app.ix_alerts_user_created")
    op.execute("DROP TABLE IF EXISTS app.alerts")
    op.execute("DROP INDEX IF EXISTS app.ix_clients_email")
    op.execute("DROP TABLE IF EXISTS app.clients")
