"""API v1 endpoints package."""

from . import (
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
	users,
)

__all__ = [
	"analytics",
	"appointments",
	"assistant",
	"audit",
	"auth",
	"blobs",
	"clinics",
	"documents",
	"forms",
	"health",
	"inventory",
	"notifications",
	"patients",
	"payments",
	"qr",
	"queue",
	"reminders",
	"users",
]
