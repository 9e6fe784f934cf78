"""Sample helpdesk data: agents, expertise, tickets and default rules."""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import UUID
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import func, select, text

from app.core.config import settings
from app.models import (
    Agent,
    AgentCategoryExpertise,
    AgentSubcategoryExpertise,
    AssignmentRule,
    Ticket,
)
from app.core.default_assignment_rules import DEFAULT_ASSIGNMENT_RULES

# Fixed category ids so rules and expertise can reference them across runs
CATEGORIES = {
    "email": UUID("c0000001-0001-4000-8000-000000000001"),
    "network": UUID("c0000001-0001-4000-8000-000000000002"),
    "billing": UUID("c0000001-0001-4000-8000-000000000003"),
    "database": UUID("c0000001-0001-4000-8000-000000000004"),
}
SUBCATEGORIES = {
    "vpn": UUID("d0000002-0002-4000-8000-000000000001"),
    "refunds": UUID("d0000002-0002-4000-8000-000000000002"),
}
PRIORITIES = ["low", "medium", "high", "urgent"]
STATUSES = ["open", "pending", "in_progress", "resolved", "closed"]
TIERS = [None, "standard", "enterprise", "vip"]


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_maker() as session:
        print("Seeding helpdesk sample data")

        # TRUNCATE ... CASCADE handles FK ordering
        await session.execute(
            text(
                "TRUNCATE TABLE "
                "ticket_assignment_log, "
                "tickets, "
                "agent_subcategory_expertise, "
                "agent_category_expertise, "
                "assignment_rules, "
                "agents "
                "CASCADE"
            )
        )
        await session.commit()
        print("Cleared existing data")

        # 0. Default assignment rules
        for rule in DEFAULT_ASSIGNMENT_RULES:
            session.add(AssignmentRule(**rule))
        await session.flush()
        print(f"Created {len(DEFAULT_ASSIGNMENT_RULES)} assignment rules")

        # 1. Agents across four teams
        agents = []
        roster = [
            ("tier2", "available", 8, ["sql", "linux"]),
            ("tier2", "available", None, ["networking"]),
            ("tier2", "busy", None, []),
            ("billing", "available", 12, ["stripe"]),
            ("billing", "away", None, []),
            ("support", "available", None, ["outlook"]),
            ("support", "available", None, []),
            ("support", "offline", None, ["sql"]),
            ("night", "available", 6, []),
            ("night", "offline", None, ["networking"]),
        ]
        for i, (team, availability, capacity, skills) in enumerate(roster, 1):
            agent = Agent(
                full_name=f"Agent {i} Example",
                email=f"agent{i}@helpdesk.example",
                role="admin" if i == 1 else "agent",
                team_id=team,
                availability=availability,
                max_concurrent_tickets=capacity,
                skill_tags=skills,
            )
            session.add(agent)
            agents.append(agent)
        await session.flush()
        print(f"Created {len(agents)} agents")

        # 2. Declared expertise for roughly half of the agents
        category_names = list(CATEGORIES)
        expertise = 0
        for i, agent in enumerate(agents[::2]):
            session.add(
                AgentCategoryExpertise(
                    agent_id=agent.agent_id,
                    category_id=CATEGORIES[category_names[i % len(category_names)]],
                    expertise_level=["expert", "intermediate", "basic"][i % 3],
                    is_primary=i % 2 == 0,
                )
            )
            expertise += 1
        session.add(
            AgentSubcategoryExpertise(
                agent_id=agents[1].agent_id,
                subcategory_id=SUBCATEGORIES["vpn"],
                expertise_level="expert",
                is_primary=True,
            )
        )
        session.add(
            AgentSubcategoryExpertise(
                agent_id=agents[3].agent_id,
                subcategory_id=SUBCATEGORIES["refunds"],
                expertise_level="intermediate",
            )
        )
        await session.flush()
        print(f"Created {expertise + 2} expertise rows")

        # 3. Tickets: a mix of queued, active and resolved work
        now = datetime.now(timezone.utc)
        tickets = []
        for i in range(80):
            status = STATUSES[i % len(STATUSES)]
            agent = agents[i % len(agents)]
            created_at = now - timedelta(days=(i % 30), hours=i % 24)
            ticket = Ticket(
                title=f"Sample ticket {i + 1}",
                description="Customer reports an issue with their account",
                priority=PRIORITIES[i % len(PRIORITIES)],
                status=status,
                category_id=CATEGORIES[category_names[i % len(category_names)]],
                customer_tier=TIERS[i % len(TIERS)],
                # every seventh ticket stays in the queue
                assigned_to=None if i % 7 == 0 else agent.agent_id,
                created_at=created_at,
            )
            if status in ("resolved", "closed") and ticket.assigned_to is not None:
                ticket.resolved_by = agent.agent_id
                ticket.resolved_at = created_at + timedelta(hours=4 + i % 40)
                ticket.satisfaction_rating = 1 + i % 5
            session.add(ticket)
            tickets.append(ticket)
        await session.flush()
        print(f"Created {len(tickets)} tickets")

        await session.commit()

        # Recalculate capacity counters from the tickets just inserted
        await session.execute(
            text("""
            UPDATE agents SET active_tickets_count = (
                SELECT COUNT(*)
                FROM tickets t
                WHERE t.assigned_to = agents.agent_id
                AND t.status IN ('open', 'pending', 'in_progress')
            )
            """)
        )
        await session.commit()
        print("Updated agent active_tickets_count values")

        # Validation
        ticket_cnt = await session.scalar(select(func.count()).select_from(Ticket))
        queued = await session.scalar(
            select(func.count()).select_from(Ticket).where(Ticket.assigned_to.is_(None))
        )

        print("\nValidation:")
        print(f"  Tickets: {ticket_cnt}")
        print(f"  Queued: {queued}")
        print("Seeding complete")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
