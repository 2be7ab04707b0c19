"""
HTTP routes for the CityHub API, one router per entity.
"""

from fastapi import APIRouter

from cityhub.routes import auth, corporates, offers, restaurants, spotlight, stores, users

router = APIRouter()
router.include_router(users.router)
router.include_router(auth.router)
router.include_router(offers.router)
router.include_router(spotlight.router)
router.include_router(restaurants.router)
router.include_router(stores.router)
router.include_router(corporates.router)
