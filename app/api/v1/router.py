from fastapi import APIRouter

from app.api.v1.endpoints import (
    assignment_config,
    assignment_rules,
    health,
    tickets,
    workload,
)

router = APIRouter(prefix="/api/v1")

router.include_router(assignment_rules.router)
router.include_router(assignment_config.router)
router.include_router(tickets.router)
router.include_router(workload.router)
router.include_router(health.router)
