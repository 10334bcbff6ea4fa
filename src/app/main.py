"""
FastAPI 애플리케이션 진입점.

실행:
- 개발: uvicorn src.app.main:app --reload
- 프로덕션: uvicorn src.app.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from src.app.routes import exports
from src.core.config import PROJECT_ROOT, ExportSettings, build_stores, load_config

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    애플리케이션 생명주기 관리.

    시작 시: 설정 로드, 저장소 생성
    테스트에서 app.state에 저장소를 미리 넣어두면 그대로 사용.
    """
    # Startup
    if not hasattr(app.state, "config"):
        app.state.config = load_config()
    config = app.state.config

    if not hasattr(app.state, "export_settings"):
        app.state.export_settings = ExportSettings.from_config(config, PROJECT_ROOT)

    if not hasattr(app.state, "blob_store") or not hasattr(app.state, "metadata_store"):
        app.state.blob_store, app.state.metadata_store = build_stores(config, PROJECT_ROOT)

    logger.info(
        f"Export service ready (storage backend: "
        f"{config.get('storage', {}).get('backend', 'local')})"
    )

    yield

    # Shutdown
    # (리소스 정리 필요 시 여기에 추가)


# =============================================================================
# App Instance
# =============================================================================

app = FastAPI(
    title="Photo Archive Export",
    description="큐레이션된 프로젝트 사진 → 메타데이터 포함 ZIP 아카이브",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Routes
# =============================================================================

app.include_router(exports.api_router, prefix="/api/projects", tags=["Exports API"])


# =============================================================================
# Root Endpoints
# =============================================================================


@app.get("/")
async def root() -> dict[str, Any]:
    return {
        "message": "Photo Archive Export",
        "endpoints": {
            "export": "/api/projects/{project_id}/export",
            "archives": "/api/projects/{project_id}/archives",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """헬스 체크."""
    return {"status": "ok"}


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
