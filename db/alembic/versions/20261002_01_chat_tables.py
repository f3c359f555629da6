# Nombre de archivo: 20261002_01_chat_tables.py
# Ubicación de archivo: db/alembic/versions/20261002_01_chat_tables.py
# Descripción: Tablas de sesiones y mensajes del asistente de reclamos

"""Crear tablas chat_sessions y chat_messages"""

from __future__ import annotations

from alembic import op


revision = "20261002_01"
down_revision = "20261001_02"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.chat_sessions (
            id VARCHAR(64) PRIMARY KEY,
            user_id VARCHAR(255),
            title VARCHAR(255) NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_chat_sessions_user_updated
        ON app.chat_sessions (user_id, updated_at)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.chat_messages (
            id SERIAL PRIMARY KEY,
            session_id VARCHAR(64) NOT NULL REFERENCES app.chat_sessions(id) ON DELETE CASCADE,
            role VARCHAR(16) NOT NULL,
            content TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_chat_messages_session_created
        ON app.chat_messages (session_id, created_at)
        """
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS app.ix_chat_messages_session_created")
    op.execute("DROP TABLE IF EXISTS app.chat_messages")
    op.execute("DROP INDEX IF EXISTS app.ix_chat_sessions_user_updated")
    op.execute("DROP TABLE IF EXISTS app.chat_sessions")
