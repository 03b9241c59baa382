from fastapi import APIRouter

from . import analysis, customers, payments, profile

router = APIRouter(prefix="/v1")
router.include_router(customers.router)
# quota-consuming AI endpoints, some nested under /customers/{id}
router.include_router(analysis.router)
router.include_router(profile.router)
router.include_router(payments.router)
