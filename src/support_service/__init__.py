"""Multi-tenant customer support backend: conversations, escalation to human agents and issues."""
