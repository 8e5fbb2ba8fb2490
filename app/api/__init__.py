"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import admin, coach, conversations, meta_webhook, orders, research, sales_chat

router = APIRouter()

# Customer-facing channels
router.include_router(sales_chat.router, tags=["sales"])
router.include_router(meta_webhook.router, tags=["webhooks"])

# Tenant training
router.include_router(research.router, tags=["research"])

# Tenant operations
router.include_router(orders.router, tags=["orders"])
router.include_router(conversations.router, tags=["conversations"])
router.include_router(coach.router, tags=["coach"])

# Platform operator
router.include_router(admin.router, tags=["admin"])
