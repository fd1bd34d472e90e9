"""create chat schema

Revision ID: 3f9a1c2d7b4e
Revises:
Create Date: 2026-10-18 09:12:41.204117

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7b4e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Step 1: updated_at maintenance
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    # Step 2: Tables
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(128) PRIMARY KEY,
            username VARCHAR(20) NOT NULL UNIQUE
                CHECK (username ~ '^[a-z0-9_.]{3,20}$'),
            display_name VARCHAR(255) NOT NULL,
            avatar_url VARCHAR(2048),
            email VARCHAR(255),
            language VARCHAR(2) CHECK (language IN ('en', 'es')),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS conversations (
            id VARCHAR(300) PRIMARY KEY,
            user_a_id VARCHAR(128) NOT NULL,
            user_b_id VARCHAR(128) NOT NULL,
            last_message TEXT NOT NULL DEFAULT '',
            last_message_at TIMESTAMP WITH TIME ZONE NOT NULL,
            last_message_sender_id VARCHAR(128),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CHECK (user_a_id <> user_b_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS conversation_participants (
            id VARCHAR(36) PRIMARY KEY,
            conversation_id VARCHAR(300) NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            user_id VARCHAR(128) NOT NULL,
            username VARCHAR(20),
            display_name VARCHAR(255),
            avatar_url VARCHAR(2048),
            language VARCHAR(2) CHECK (language IN ('en', 'es')),
            unread_count INTEGER NOT NULL DEFAULT 0 CHECK (unread_count >= 0),
            archived BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT uq_participant_conversation UNIQUE (conversation_id, user_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id VARCHAR(36) PRIMARY KEY,
            conversation_id VARCHAR(300) NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            sender_id VARCHAR(128) NOT NULL,
            text TEXT NOT NULL DEFAULT '',
            sender_language VARCHAR(2) NOT NULL CHECK (sender_language IN ('en', 'es')),
            translated_text TEXT,
            attachments JSON DEFAULT '[]',
            link_preview JSON,
            sent_at TIMESTAMP WITH TIME ZONE NOT NULL,
            read BOOLEAN NOT NULL DEFAULT FALSE,
            edited BOOLEAN NOT NULL DEFAULT FALSE,
            edited_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            id VARCHAR(36) PRIMARY KEY,
            pair_key VARCHAR(300) NOT NULL UNIQUE,
            from_user_id VARCHAR(128) NOT NULL,
            to_user_id VARCHAR(128) NOT NULL,
            status VARCHAR(10) NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'accepted')),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            accepted_at TIMESTAMP WITH TIME ZONE,
            CHECK (from_user_id <> to_user_id)
        )
    """)

    # Step 3: Indexes
    op.execute('CREATE INDEX IF NOT EXISTS idx_conversations_last_message_at ON conversations(last_message_at DESC)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_participants_user ON conversation_participants(user_id, archived)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_messages_conversation_sent ON messages(conversation_id, sent_at)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_friendships_to_user ON friendships(to_user_id, status)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_friendships_from_user ON friendships(from_user_id)')

    # Step 4: Triggers
    for table in ('users', 'conversations', 'messages'):
        op.execute(f'''
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')


def downgrade() -> None:
    """Downgrade schema."""
    op.execute('DROP TABLE IF EXISTS friendships')
    op.execute('DROP TABLE IF EXISTS messages')
    op.execute('DROP TABLE IF EXISTS conversation_participants')
    op.execute('DROP TABLE IF EXISTS conversations')
    op.execute('DROP TABLE IF EXISTS users')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
