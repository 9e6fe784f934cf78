"""initial helpdesk assignment schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "agents",
        _uuid_pk("agent_id"),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="agent"),
        sa.Column("team_id", sa.String(100)),
        sa.Column("availability", sa.String(20), nullable=False, server_default="available"),
        sa.Column("max_concurrent_tickets", sa.Integer()),
        sa.Column("active_tickets_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skill_tags", postgresql.ARRAY(sa.String())),
        *_timestamps(),
        sa.CheckConstraint("active_tickets_count >= 0", name="ck_active_tickets_nonneg"),
        sa.CheckConstraint(
            "availability IN ('available', 'busy', 'away', 'offline')",
            name="ck_agent_availability",
        ),
        sa.CheckConstraint("role IN ('agent', 'admin', 'customer')", name="ck_agent_role"),
    )
    op.create_index("idx_agents_team_id", "agents", ["team_id"])

    op.create_table(
        "tickets",
        _uuid_pk("ticket_id"),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("category_id", postgresql.UUID(as_uuid=True)),
        sa.Column("subcategory_id", postgresql.UUID(as_uuid=True)),
        sa.Column("customer_tier", sa.String(50)),
        sa.Column(
            "assigned_to",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "resolved_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="SET NULL"),
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.Column("satisfaction_rating", sa.Integer()),
        *_timestamps(),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')", name="ck_ticket_priority"
        ),
        sa.CheckConstraint(
            "status IN ('open', 'pending', 'in_progress', 'resolved', 'closed')",
            name="ck_ticket_status",
        ),
        sa.CheckConstraint(
            "satisfaction_rating IS NULL OR satisfaction_rating BETWEEN 1 AND 5",
            name="ck_ticket_satisfaction_range",
        ),
    )
    op.create_index("idx_tickets_assigned_status", "tickets", ["assigned_to", "status"])
    op.create_index(
        "idx_tickets_resolved_by_resolved_at", "tickets", ["resolved_by", "resolved_at"]
    )

    for table, column, constraint in (
        ("agent_category_expertise", "category_id", "uq_agent_category_expertise"),
        ("agent_subcategory_expertise", "subcategory_id", "uq_agent_subcategory_expertise"),
    ):
        check_name = (
            "ck_category_expertise_level"
            if column == "category_id"
            else "ck_subcategory_expertise_level"
        )
        op.create_table(
            table,
            _uuid_pk("expertise_id"),
            sa.Column(
                "agent_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("agents.agent_id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(column, postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("expertise_level", sa.String(20), nullable=False, server_default="basic"),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="false"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.UniqueConstraint("agent_id", column, name=constraint),
            sa.CheckConstraint(
                "expertise_level IN ('expert', 'intermediate', 'basic')", name=check_name
            ),
        )

    op.create_table(
        "assignment_rules",
        _uuid_pk("rule_id"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "conditions",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "actions",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        *_timestamps(),
    )
    # Only enabled rules compete for a priority slot
    op.create_index(
        "uq_assignment_rules_enabled_priority",
        "assignment_rules",
        ["priority"],
        unique=True,
        postgresql_where=sa.text("enabled"),
    )

    op.create_table(
        "assignment_config",
        sa.Column("id", sa.Integer(), primary_key=True, server_default=sa.text("1")),
        sa.Column("workload_weight", sa.Integer(), nullable=False, server_default="40"),
        sa.Column("performance_weight", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("availability_weight", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("max_concurrent_tickets", sa.Integer(), nullable=False, server_default="10"),
        sa.Column(
            "business_hours",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text(
                """'{"start": "09:00", "end": "17:00", "timezone": "UTC"}'::jsonb"""
            ),
        ),
        sa.Column("auto_rebalance", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("rebalance_threshold", sa.Integer(), nullable=False, server_default="80"),
        sa.Column(
            "performance_blend",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "resolution_time_baseline_hours",
            sa.Float(),
            nullable=False,
            server_default="48",
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("id = 1", name="ck_assignment_config_singleton"),
    )
    op.execute("INSERT INTO assignment_config (id) VALUES (1)")

    op.create_table(
        "ticket_assignment_log",
        _uuid_pk("log_id"),
        sa.Column(
            "ticket_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tickets.ticket_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "from_agent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "to_agent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="SET NULL"),
        ),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("rule_id", postgresql.UUID(as_uuid=True)),
        sa.Column("score", sa.Float()),
        sa.Column("reason", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "idx_assignment_log_ticket_created",
        "ticket_assignment_log",
        ["ticket_id", "created_at"],
    )

    # ---------------------------------------------------------------
    # Trigger: keep updated_at current
    # ---------------------------------------------------------------
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    for table in ("agents", "tickets", "assignment_rules", "assignment_config"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)

    # ---------------------------------------------------------------
    # Trigger: re-derive active_tickets_count when a ticket is created,
    # deleted or changes status.  Assignment moves are counted by the
    # application (reserve/release slot), so assigned_to is not watched.
    # ---------------------------------------------------------------
    op.execute("""
        CREATE OR REPLACE FUNCTION refresh_agent_active_tickets_count()
        RETURNS TRIGGER AS $$
        DECLARE
            target_agent_id UUID;
        BEGIN
            IF TG_OP = 'DELETE' THEN
                target_agent_id := OLD.assigned_to;
            ELSE
                target_agent_id := NEW.assigned_to;
            END IF;

            IF target_agent_id IS NOT NULL THEN
                UPDATE agents
                SET active_tickets_count = (
                    SELECT COUNT(*)
                    FROM tickets t
                    WHERE t.assigned_to = target_agent_id
                    AND t.status IN ('open', 'pending', 'in_progress')
                )
                WHERE agent_id = target_agent_id;
            END IF;

            IF TG_OP = 'DELETE' THEN
                RETURN OLD;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_refresh_active_tickets
        AFTER INSERT OR DELETE OR UPDATE OF status ON tickets
        FOR EACH ROW
        EXECUTE FUNCTION refresh_agent_active_tickets_count();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_refresh_active_tickets ON tickets;")
    op.execute("DROP FUNCTION IF EXISTS refresh_agent_active_tickets_count();")
    for table in ("agents", "tickets", "assignment_rules", "assignment_config"):
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_updated_at ON {table};")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column();")

    op.drop_index("idx_assignment_log_ticket_created", table_name="ticket_assignment_log")
    op.drop_table("ticket_assignment_log")
    op.drop_table("assignment_config")
    op.drop_index("uq_assignment_rules_enabled_priority", table_name="assignment_rules")
    op.drop_table("assignment_rules")
    op.drop_table("agent_subcategory_expertise")
    op.drop_table("agent_category_expertise")
    op.drop_index("idx_tickets_resolved_by_resolved_at", table_name="tickets")
    op.drop_index("idx_tickets_assigned_status", table_name="tickets")
    op.drop_table("tickets")
    op.drop_index("idx_agents_team_id", table_name="agents")
    op.drop_table("agents")
