from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from datetime import datetime, timezone
import logging
import os
import time

from db.database import engine, Base

# models を import しておく（create_all がテーブルを認識するため）
from models.user import User
from models.buddy import Buddy
from models.reminder import Reminder
from models.user_stats import UserStats

from routers import auth, reminders, buddies, users
from services.errors import AppError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("buddyremind")


app = FastAPI(title="BuddyRemind API")

# 起動時間の記録（任意）
STARTED_AT = time.time()

# --- CORS設定（CORS_ORIGINS はカンマ区切り、未設定なら全許可）---
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- ルーター ---
app.include_router(auth.router)
app.include_router(reminders.router)
app.include_router(buddies.router)
app.include_router(users.router)


# --- エラーは全部 {"success": false, "message": ...} で返す ---
@app.exception_handler(AppError)
def _app_error(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
def _validation_error(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"success": False, "message": "; ".join(messages)})


@app.exception_handler(StarletteHTTPException)
def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(Exception)
def _server_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})


@app.on_event("startup")
def _startup():
    """
    起動時に1回だけ実行される処理
    - DBテーブル作成
    """
    Base.metadata.create_all(bind=engine)
    logger.info("database tables ready")


# --- コールドスタート対策：超軽量エンドポイント（DBに触らない） ---
@app.get("/ping", include_in_schema=False)
def ping():
    return {
        "ok": True,
        "service": "buddyremind-backend",
        "ts": datetime.now(timezone.utc).isoformat(),
        "uptime_sec": round(time.time() - STARTED_AT, 2),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
