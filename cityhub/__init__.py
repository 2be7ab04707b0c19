"""
CityHub backend-for-frontend.

A FastAPI service in front of the hosted Postgres/auth/storage platform:
restaurants, stores, home page offers, spotlight media, corporates, user
profiles and the login-or-register session flow.
"""
