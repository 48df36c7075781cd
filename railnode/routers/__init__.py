"""
FastAPI routers.

crud.py builds one APIRouter per registered model; the routers only talk to
the CrudStore handed to them and map store results to HTTP status codes.
"""
