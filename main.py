import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from db.database import Base, engine
from env import PORT
from logger_manager import log_info
from routers.analysis import router as analysis_router
from routers.history import router as history_router
from routers.product import router as product_router
from routers.scanner import router as scanner_router
from services.ai_service import build_ai_service
from services.product_sources import default_product_sources


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables and build the shared collaborators once during startup
    log_info("Starting up...")
    Base.metadata.create_all(bind=engine)
    app.state.ai_service = build_ai_service()
    app.state.product_sources = default_product_sources()
    log_info(f"Product sources: {', '.join(s.name for s in app.state.product_sources)}")
    yield
    log_info("Shutting down...")


app = FastAPI(title="Product Safety API", lifespan=lifespan)


@app.get("/")
def read_root():
    return RedirectResponse("/docs")


# log every request with its status and duration
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    log_info(f"Request: {request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
    return response


app.include_router(scanner_router, prefix="/api/scanner")
app.include_router(analysis_router, prefix="/api/analyze")
app.include_router(product_router, prefix="/api/product")
app.include_router(history_router, prefix="/api/history")

# To run the FastAPI app, use the command: uvicorn main:app --reload
if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
