"""initial support schema

Revision ID: 20250101_0001
Revises:
Create Date: 2025-01-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20250101_0001'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns() -> list[sa.Column]:
    """Columns shared by every table (BaseModel + TenantMixin)."""
    return [
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('tenant_id', sa.String(length=64), nullable=False, server_default='default'),
    ]


def _enum(length: int = 32) -> sa.String:
    return sa.String(length=length)


def upgrade() -> None:
    # ========================================
    # Users and agents
    # ========================================
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('user_name', sa.String(length=100), nullable=False,
                  comment='Login name - unique across tenants'),
        sa.Column('display_name', sa.String(length=200), nullable=True,
                  comment='Display name, falls back to user_name'),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('user_type', _enum(), nullable=False,
                  comment='Persona that determines the RBAC role'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_users_user_name', 'users', ['user_name'], unique=True)
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_users_tenant_id_user_type', 'users', ['tenant_id', 'user_type'])

    op.create_table(
        'agents',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', _enum(), nullable=False),
        sa.Column('max_concurrent_conversations', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('active_conversation_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_active_at', sa.DateTime(), nullable=True),
        sa.Column('skills', sa.String(length=1000), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('notes', sa.String(length=2000), nullable=True),
    )
    op.create_index('ix_agents_user_id', 'agents', ['user_id'], unique=True)
    op.create_index('ix_agents_status', 'agents', ['status'])
    op.create_index('ix_agents_tenant_id', 'agents', ['tenant_id'])
    op.create_index('ix_agents_tenant_id_status', 'agents', ['tenant_id', 'status'])

    op.create_table(
        'agent_notification_preferences',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('enable_browser_notifications', sa.Boolean(), nullable=False),
        sa.Column('enable_audio_alerts', sa.Boolean(), nullable=False),
        sa.Column('enable_email_notifications', sa.Boolean(), nullable=False),
        sa.Column('notify_on_standard_priority', sa.Boolean(), nullable=False),
        sa.Column('notify_on_high_priority', sa.Boolean(), nullable=False),
        sa.Column('notify_on_critical_priority', sa.Boolean(), nullable=False),
        sa.Column('notify_during_break', sa.Boolean(), nullable=False),
        sa.Column('notify_when_offline', sa.Boolean(), nullable=False),
        sa.Column('audio_volume', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('custom_sound_url', sa.String(length=500), nullable=True),
        sa.UniqueConstraint('user_id', 'tenant_id', name='uq_agent_preferences_user_tenant'),
    )
    op.create_index('ix_agent_notification_preferences_user_id', 'agent_notification_preferences', ['user_id'])
    op.create_index('ix_agent_notification_preferences_tenant_id', 'agent_notification_preferences', ['tenant_id'])

    # ========================================
    # Conversations
    # ========================================
    op.create_table(
        'conversations',
        *_base_columns(),
        sa.Column('reference', sa.String(length=450), nullable=False),
        sa.Column('channel_data', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(length=450), nullable=True),
        sa.Column('user_name', sa.String(length=200), nullable=True),
        sa.Column('channel_id', sa.String(length=50), nullable=True),
        sa.Column('whatsapp_phone_number', sa.String(length=20), nullable=True),
        sa.Column('status', _enum(), nullable=False),
        sa.Column('mode', _enum(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('current_agent_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('escalated_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('escalation_reason', sa.String(length=1000), nullable=True),
        sa.Column('conversation_summary', sa.Text(), nullable=True),
        sa.Column('message_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_activity_at', sa.DateTime(), nullable=False),
        sa.Column('thread_id', sa.String(length=200), nullable=True),
        sa.Column('max_turns', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('resolution_category', _enum(), nullable=True),
        sa.Column('resolution_notes', sa.String(length=2000), nullable=True),
        sa.Column('resolved_by_agent_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
    )
    op.create_index('ix_conversations_reference', 'conversations', ['reference'], unique=True)
    op.create_index('ix_conversations_whatsapp_phone_number', 'conversations', ['whatsapp_phone_number'])
    op.create_index('ix_conversations_current_agent_id', 'conversations', ['current_agent_id'])
    op.create_index('ix_conversations_tenant_id', 'conversations', ['tenant_id'])
    op.create_index('ix_conversations_tenant_status_mode', 'conversations', ['tenant_id', 'status', 'mode'])

    op.create_table(
        'conversation_messages',
        *_base_columns(),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id'), nullable=False),
        sa.Column('bot_framework_conversation_id', sa.String(length=450), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('tool_call_id', sa.String(length=200), nullable=True),
        sa.Column('tool_calls', sa.Text(), nullable=True),
        sa.Column('image_type', sa.String(length=50), nullable=True),
        sa.Column('image_data', sa.Text(), nullable=True),
        sa.Column('attachments', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.String(length=450), nullable=True),
        sa.Column('user_name', sa.String(length=200), nullable=True),
        sa.Column('channel_id', sa.String(length=50), nullable=True),
        sa.Column('is_escalated', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_conversation_messages_conversation_id', 'conversation_messages', ['conversation_id'])
    op.create_index(
        'ix_conversation_messages_bot_framework_conversation_id',
        'conversation_messages',
        ['bot_framework_conversation_id'],
    )
    op.create_index('ix_conversation_messages_timestamp', 'conversation_messages', ['timestamp'])
    op.create_index('ix_conversation_messages_tenant_id', 'conversation_messages', ['tenant_id'])

    op.create_table(
        'conversation_handoffs',
        *_base_columns(),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id'), nullable=False),
        sa.Column('conversation_reference', sa.String(length=450), nullable=False),
        sa.Column('handoff_type', _enum(), nullable=False),
        sa.Column('from_participant_type', _enum(), nullable=False),
        sa.Column('to_participant_type', _enum(), nullable=False),
        sa.Column('from_agent_id', sa.Uuid(), nullable=True),
        sa.Column('to_agent_id', sa.Uuid(), nullable=True),
        sa.Column('reason', sa.String(length=1000), nullable=False),
        sa.Column('conversation_transcript', sa.Text(), nullable=True),
        sa.Column('context_data', sa.Text(), nullable=True),
        sa.Column('status', _enum(), nullable=False),
        sa.Column('initiated_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.String(length=2000), nullable=True),
    )
    op.create_index('ix_conversation_handoffs_conversation_id', 'conversation_handoffs', ['conversation_id'])
    op.create_index('ix_conversation_handoffs_tenant_id', 'conversation_handoffs', ['tenant_id'])

    op.create_table(
        'conversation_participants',
        *_base_columns(),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id'), nullable=False),
        sa.Column('type', _enum(), nullable=False),
        sa.Column('participant_id', sa.String(length=450), nullable=True),
        sa.Column('participant_name', sa.String(length=200), nullable=True),
        sa.Column('whatsapp_phone_number', sa.String(length=20), nullable=True),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('left_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_conversation_participants_conversation_id', 'conversation_participants', ['conversation_id'])
    op.create_index('ix_conversation_participants_tenant_id', 'conversation_participants', ['tenant_id'])

    op.create_table(
        'conversation_insights',
        *_base_columns(),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id'), nullable=False),
        sa.Column('sentiment_score', sa.Float(), nullable=False),
        sa.Column('sentiment_label', sa.String(length=50), nullable=False),
        sa.Column('key_themes', sa.JSON(), nullable=True),
        sa.Column('resolution_success', sa.Boolean(), nullable=True),
        sa.Column('customer_satisfaction_indicators', sa.JSON(), nullable=True),
        sa.Column('recommendations', sa.JSON(), nullable=True),
        sa.Column('processing_model', sa.String(length=50), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=False),
        sa.Column('processing_duration_seconds', sa.Float(), nullable=False),
        sa.Column('warnings', sa.JSON(), nullable=True),
    )
    op.create_index(
        'ix_conversation_insights_conversation_id', 'conversation_insights', ['conversation_id'], unique=True
    )
    op.create_index('ix_conversation_insights_tenant_id', 'conversation_insights', ['tenant_id'])

    # ========================================
    # Issues
    # ========================================
    op.create_table(
        'contacts',
        *_base_columns(),
        sa.Column('phone_number', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
    )
    op.create_index('ix_contacts_phone_number', 'contacts', ['phone_number'])
    op.create_index('ix_contacts_tenant_id', 'contacts', ['tenant_id'])

    op.create_table(
        'issues',
        *_base_columns(),
        sa.Column('reference_number', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', _enum(), nullable=False),
        sa.Column('priority', _enum(), nullable=False),
        sa.Column('status', _enum(), nullable=False),
        sa.Column('reporter_contact_id', sa.Uuid(), sa.ForeignKey('contacts.id'), nullable=True),
        sa.Column('assigned_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('source_message_ids', sa.JSON(), nullable=True),
        sa.Column('whatsapp_metadata', sa.Text(), nullable=True),
        sa.Column('consent_flag', sa.Boolean(), nullable=False),
        sa.Column('reporter_phone', sa.String(length=20), nullable=True),
        sa.Column('reporter_name', sa.String(length=100), nullable=True),
        sa.Column('channel', sa.String(length=50), nullable=True),
        sa.Column('product', sa.String(length=100), nullable=True),
        sa.Column('severity', sa.String(length=20), nullable=True),
        sa.Column('summary', sa.String(length=200), nullable=True),
        sa.Column('resolution_notes', sa.String(length=2000), nullable=True),
        sa.Column('duplicate_of_id', sa.Uuid(), sa.ForeignKey('issues.id'), nullable=True),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id'), nullable=True),
    )
    op.create_index('ix_issues_reference_number', 'issues', ['reference_number'], unique=True)
    op.create_index('ix_issues_status', 'issues', ['status'])
    op.create_index('ix_issues_assigned_user_id', 'issues', ['assigned_user_id'])
    op.create_index('ix_issues_tenant_id', 'issues', ['tenant_id'])
    op.create_index('ix_issues_tenant_status_priority', 'issues', ['tenant_id', 'status', 'priority'])

    op.create_table(
        'issue_links',
        *_base_columns(),
        sa.Column('parent_issue_id', sa.Uuid(), sa.ForeignKey('issues.id'), nullable=False),
        sa.Column('child_issue_id', sa.Uuid(), sa.ForeignKey('issues.id'), nullable=False),
        sa.Column('link_type', _enum(), nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('created_by_system', sa.Boolean(), nullable=False),
        sa.Column('link_metadata', sa.String(length=1000), nullable=True),
        sa.UniqueConstraint('parent_issue_id', 'child_issue_id', name='uq_issue_links_parent_child'),
    )
    op.create_index('ix_issue_links_parent_issue_id', 'issue_links', ['parent_issue_id'])
    op.create_index('ix_issue_links_child_issue_id', 'issue_links', ['child_issue_id'])
    op.create_index('ix_issue_links_tenant_id', 'issue_links', ['tenant_id'])

    for table, columns in (
        ('event_logs', [
            sa.Column('type', sa.String(length=100), nullable=False),
            sa.Column('payload', sa.JSON(), nullable=True),
            sa.Column('created_by', sa.String(length=450), nullable=True),
        ]),
        ('internal_notes', [
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('author_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        ]),
        ('attachments', [
            sa.Column('url', sa.String(length=2000), nullable=False),
            sa.Column('content_type', sa.String(length=100), nullable=False),
            sa.Column('size_bytes', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('scan_status', sa.String(length=20), nullable=False, server_default='Pending'),
            sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        ]),
    ):
        op.create_table(
            table,
            *_base_columns(),
            sa.Column('issue_id', sa.Uuid(), sa.ForeignKey('issues.id'), nullable=False),
            *columns,
        )
        op.create_index(f'ix_{table}_issue_id', table, ['issue_id'])
        op.create_index(f'ix_{table}_tenant_id', table, ['tenant_id'])


def downgrade() -> None:
    for table in (
        'attachments',
        'internal_notes',
        'event_logs',
        'issue_links',
        'issues',
        'contacts',
        'conversation_insights',
        'conversation_participants',
        'conversation_handoffs',
        'conversation_messages',
        'conversations',
        'agent_notification_preferences',
        'agents',
        'users',
    ):
        op.drop_table(table)
