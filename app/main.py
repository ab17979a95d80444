# file: app/main.py
import logging
from datetime import datetime
from typing import Optional
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from agents import Librarian
from app.config import get_settings
from app.errors import ExternalServiceError, LimitReachedError, NotAuthenticatedError, ValidationError
from app.logging_config import setup_logging
from app.schema import (
    ALL, AuthUser, CompanyIn, FilterSpec, GenerateRequest, SaveOutreachRequest,
    StatusUpdate, TemplateIn,
)
from app.services.plans import plan_comparison
from app.services.templates import placeholders
from app.state import AppState

log = logging.getLogger("api")

# ---- dependencies ----

def get_state(request: Request) -> AppState:
    return request.app.state.investormatch

async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    state: AppState = Depends(get_state),
) -> AuthUser:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise NotAuthenticatedError()
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise NotAuthenticatedError()
    return await state.authenticate(token)

# ---- exception handlers ----

async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"error": "validation_error", "detail": str(exc), "fields": exc.fields})

async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(status_code=401, content={"error": "not_authenticated", "detail": str(exc)})

async def limit_reached_handler(request: Request, exc: LimitReachedError):
    return JSONResponse(
        status_code=403,
        content={"error": "limit_reached", "detail": str(exc), "action": exc.action, "tier": exc.tier},
    )

async def external_service_handler(request: Request, exc: ExternalServiceError):
    log.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "error": "service_unavailable",
            "service": exc.service,
            "detail": "A dependent service is temporarily unavailable. Please try again.",
        },
    )

# ---- app ----

def create_app(state: Optional[AppState] = None) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    @app.on_event("startup")
    async def startup():
        """Connect collaborators unless a state was injected"""
        if getattr(app.state, "investormatch", None) is None:
            setup_logging()
            app.state.investormatch = await AppState.create(settings)

    @app.on_event("shutdown")
    async def shutdown():
        if getattr(app.state, "investormatch", None) is not None:
            await app.state.investormatch.close()

    if state is not None:
        app.state.investormatch = state

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotAuthenticatedError, not_authenticated_handler)
    app.add_exception_handler(LimitReachedError, limit_reached_handler)
    app.add_exception_handler(ExternalServiceError, external_service_handler)

    @app.get("/health")
    async def health(state: AppState = Depends(get_state)):
        """Store connectivity and generation configuration"""
        stores = await state.registry.health_check()
        healthy = all(v == "healthy" for v in stores.values())
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "timestamp": datetime.utcnow().isoformat(),
                "stores": stores,
                "llm": {
                    "configured": state.llm.is_configured(),
                    "enabled": state.settings.enable_ai_generation,
                    "model": state.settings.openai_model,
                },
                "billing": {"configured": state.billing.is_configured()},
            },
        )

    @app.get("/plans")
    async def list_plans(state: AppState = Depends(get_state)):
        return {"plans": plan_comparison(state.tracker.plans)}

    # ---- investors ----

    @app.get("/investors")
    async def search_investors(
        industry: str = ALL,
        stage: str = ALL,
        location: str = ALL,
        q: Optional[str] = None,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        """
        Filter the investor list; counts as one search.
        A read path: when usage can't be read or written the search is still served.
        """
        try:
            await state.ensure_allowed(user, "search")
        except ExternalServiceError as e:
            log.warning("Usage unavailable for %s, allowing search: %s", user.id, e)
        filters = FilterSpec(industry=industry, stage=stage, location=location, query=q)
        investors = await state.scout.run(filters)
        try:
            await state.record(user, "search")
        except ExternalServiceError as e:
            log.warning("Could not record search for %s: %s", user.id, e)
        return {"count": len(investors), "investors": [i.model_dump(mode="json") for i in investors]}

    @app.get("/investors/{investor_id}")
    async def get_investor(
        investor_id: str,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        investor = await state.scout.get(investor_id)
        if not investor:
            raise HTTPException(status_code=404, detail="Investor not found")
        return investor.model_dump(mode="json")

    # ---- company ----

    @app.get("/company")
    async def get_company(user: AuthUser = Depends(get_current_user), state: AppState = Depends(get_state)):
        company = await state.load_company(user)
        if not company:
            raise HTTPException(status_code=404, detail="Company profile not set up")
        return company.model_dump(mode="json")

    @app.post("/company", status_code=201)
    async def create_company(
        payload: CompanyIn,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        """Onboarding: one company per user"""
        if await state.registry.companies.fetch_by_user(user.id):
            raise HTTPException(status_code=409, detail="Company profile already exists")
        company = await state.registry.companies.create(user.id, payload)
        state.remember_company(user.id, company)
        return company.model_dump(mode="json")

    @app.put("/company")
    async def update_company(
        payload: CompanyIn,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        existing = await state.registry.companies.fetch_by_user(user.id)
        if not existing:
            raise HTTPException(status_code=404, detail="Company profile not set up")
        company = await state.registry.companies.update(existing.id, payload)
        state.remember_company(user.id, company)
        return company.model_dump(mode="json")

    # ---- outreach ----

    @app.post("/outreach/generate")
    async def generate_outreach(
        payload: GenerateRequest,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        await state.ensure_allowed(user, "outreach")
        investor = await state.scout.get(payload.investor_id)
        if not investor:
            raise HTTPException(status_code=404, detail="Investor not found")
        company = await state.load_company(user)
        if not company:
            raise HTTPException(status_code=404, detail="Company profile not set up")

        result = await state.writer.run(
            investor,
            company,
            payload.notes,
            payload.message_type,
            previous_message=payload.previous_message,
            follow_up_type=payload.follow_up_type,
            new_updates=payload.new_updates,
            inquiry_type=payload.inquiry_type,
            questions=payload.questions,
            attachments=payload.attachments,
        )
        return result.model_dump()

    @app.post("/outreach", status_code=201)
    async def save_outreach(
        payload: SaveOutreachRequest,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        """Save a draft; counts against the monthly outreach ceiling"""
        await state.ensure_allowed(user, "outreach")
        if not await state.scout.get(payload.investor_id):
            raise HTTPException(status_code=404, detail="Investor not found")
        message = await state.curator.save_draft(user.id, payload)
        await state.record(user, "outreach")
        return message.model_dump(mode="json")

    @app.get("/outreach")
    async def list_outreach(user: AuthUser = Depends(get_current_user), state: AppState = Depends(get_state)):
        messages = await state.curator.history(user.id)
        return {"count": len(messages), "messages": [m.model_dump(mode="json") for m in messages]}

    @app.patch("/outreach/{message_id}")
    async def update_outreach_status(
        message_id: str,
        payload: StatusUpdate,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        message = await state.curator.set_status(user.id, message_id, payload.status)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        return message.model_dump(mode="json")

    # ---- templates ----

    @app.get("/templates")
    async def list_templates(
        q: str = "",
        type: str = Query(default=ALL),
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        templates = await state.librarian.run(q, type)
        return {
            "count": len(templates),
            "templates": [t.model_dump(mode="json") for t in templates],
        }

    @app.get("/templates/{template_id}/prefill")
    async def prefill_template(
        template_id: str,
        investor_id: Optional[str] = None,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        """Template text with company and investor names filled in"""
        template = await state.librarian.get(template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        investor = await state.scout.get(investor_id) if investor_id else None
        content = Librarian.prefill(template, await state.load_company(user), investor)
        return {"template_id": template.id, "content": content, "placeholders": placeholders(content)}

    @app.post("/templates", status_code=201)
    async def create_template(
        payload: TemplateIn,
        user: AuthUser = Depends(get_current_user),
        state: AppState = Depends(get_state),
    ):
        await state.ensure_allowed(user, "template")
        template = await state.librarian.create(payload, user.id)
        await state.record(user, "template")
        return template.model_dump(mode="json")

    @app.post("/session/logout", status_code=204)
    async def logout(user: AuthUser = Depends(get_current_user), state: AppState = Depends(get_state)):
        """Drop the cached company snapshot; the token itself is revoked client-side"""
        state.forget_user(user.id)
        return Response(status_code=204)

    # ---- usage & dashboard ----

    @app.get("/usage")
    async def usage(user: AuthUser = Depends(get_current_user), state: AppState = Depends(get_state)):
        tier, counters = await state.usage_for(user)
        return {
            "tier": tier,
            "limits": state.tracker.get_plan_limits(tier).model_dump(),
            "usage": state.tracker.report(tier, counters),
        }

    @app.get("/dashboard")
    async def dashboard(user: AuthUser = Depends(get_current_user), state: AppState = Depends(get_state)):
        tier, counters = await state.usage_for(user)
        messages = await state.curator.history(user.id)
        remaining = state.tracker.remaining(tier, "outreach", counters)
        return {"tier": tier, **state.curator.summarize(messages, remaining)}

    return app

app = create_app()

def main():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

if __name__ == "__main__":
    main()
