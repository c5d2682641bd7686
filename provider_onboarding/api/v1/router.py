from fastapi import APIRouter

from provider_onboarding.api.v1.endpoints.admin import router as admin_router
from provider_onboarding.api.v1.endpoints.approval_tokens import router as approval_tokens_router
from provider_onboarding.api.v1.endpoints.bank import router as bank_router
from provider_onboarding.api.v1.endpoints.businesses import router as businesses_router
from provider_onboarding.api.v1.endpoints.documents import router as documents_router
from provider_onboarding.api.v1.endpoints.identity import router as identity_router
from provider_onboarding.api.v1.endpoints.onboarding import router as onboarding_router
from provider_onboarding.api.v1.endpoints.payments import router as payments_router

router = APIRouter()
router.include_router(onboarding_router)
router.include_router(businesses_router)
router.include_router(documents_router)
router.include_router(admin_router)
router.include_router(approval_tokens_router)
router.include_router(identity_router)
router.include_router(bank_router)
router.include_router(payments_router)
