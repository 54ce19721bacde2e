"""API v1 versioned router.

Router structure
----------------
PUBLIC (no auth):
  /health, /ready, /live  -> health checks
  /auth/login             -> email + password sign-in

AUTHENTICATED (valid JWT; role checks are per-endpoint):
  /auth/me, /users, /clinics, /patients
  /appointments, /treatments, /queue, /qr
  /forms, /documents, /notifications, /payments
  /inventory, /reminders, /analytics, /assistant
  /treatment-records, /sharing, /audit-logs, /blobs
"""
from fastapi import APIRouter, Depends

from ...core.rbac import get_current_user
from .endpoints import (
    analytics,
    appointments,
    assistant,
    audit,
    auth,
    blobs,
    clinics,
    documents,
    forms,
    health,
    inventory,
    notifications,
    patients,
    payments,
    qr,
    queue,
    reminders,
    sharing,
    treatment_records,
    users,
)

router = APIRouter(prefix="/api/v1")

# =========================================================================
# PUBLIC ENDPOINTS (no auth required)
# =========================================================================

router.include_router(health.router)

# /auth/login is public; /auth/me declares its own CurrentUser dependency.
router.include_router(auth.router)

# =========================================================================
# AUTHENTICATED ENDPOINTS (require valid JWT)
# =========================================================================

for module in (
    users,
    clinics,
    patients,
    appointments,
    queue,
    qr,
    forms,
    documents,
    notifications,
    payments,
    treatment_records,
    sharing,
    inventory,
    reminders,
    analytics,
    assistant,
    audit,
    blobs,
):
    router.include_router(module.router, dependencies=[Depends(get_current_user)])
