# app/main.py
#
# This is the main entry point for the FastAPI application.
# It creates the FastAPI app instance, includes the modular routers,
# and sets up the exception handlers.
#
# The `handler` function is the entry point for AWS Lambda.

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from mangum import Mangum

from .errors import AdherenceError
from .routers import auth, profiles, links, devices, dosages, reminders, alerts, notes

app = FastAPI(
    title="Inhaler Adherence Backend API",
    description="Role-scoped data access for patients, caregivers and medical teams, "
                "using AWS Cognito for authentication and DynamoDB for storage."
)

# Include the routers
app.include_router(auth.router)
app.include_router(profiles.router)
app.include_router(links.router)
app.include_router(devices.router)
app.include_router(dosages.router)
app.include_router(reminders.router)
app.include_router(alerts.router)
app.include_router(notes.router)


@app.exception_handler(AdherenceError)
async def adherence_error_handler(request: Request, exc: AdherenceError):
    """Turns a rejected domain operation into its HTTP status."""
    print(f"API: {request.method} {request.url.path} rejected with {type(exc).__name__}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health", tags=["Health Check"])
def health_check():
    """A simple endpoint to confirm the API is running."""
    return {"status": "ok"}

# This handler is the entry point for AWS Lambda
handler = Mangum(app, lifespan="off")
