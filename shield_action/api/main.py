"""FastAPI app exposing the shield action engine to the host and controlling app."""

import asyncio
from collections import deque
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from shield_action.engine.factory import create_engine
from shield_action.engine.response import respond_after_delay
from shield_action.engine.shield_engine import ShieldActionEngine
from shield_action.errors import StoreUnavailableError
from shield_action.logger import get_logger
from shield_action.model.models import (
    ButtonPressed,
    Selection,
    ShieldEvent,
    Token,
    TokenKind,
)

log = get_logger("api")

# FastAPIアプリケーションのインスタンスを作成
app = FastAPI(
    title="Shield Action Engine",
    description="Resolves shield button presses into configured actions",
)

# グローバルな状態管理
STATE: dict[str, Any] = {
    "engine": None,
    "last_event": None,
    "last_response": None,
    "last_report": None,
    "logs": deque(maxlen=100),  # ログを保存 (最大100件)
}

# --- ロギング ---


def log_message(message: str) -> None:
    """ロガーに出力し、ログキューにも追加する."""
    log.info(message)
    STATE["logs"].append(message)


def get_engine() -> ShieldActionEngine:
    engine: ShieldActionEngine | None = STATE["engine"]
    if engine is None:
        engine = create_engine()
        STATE["engine"] = engine
    return engine


# --- Pydanticモデル定義 ---


def _not_blank(v: str) -> str:
    if not v or not v.strip():
        msg = "value must not be empty"
        raise ValueError(msg)
    return v


class ShieldActionRequest(BaseModel):
    """ホストから届くボタン押下イベント."""

    button: Literal["primary", "secondary"]
    token: str
    kind: Literal["application", "webDomain", "category"]

    @field_validator("token")
    @classmethod
    def token_must_not_be_empty(cls, v: str) -> str:
        return _not_blank(v)


class SelectionBody(BaseModel):
    """セレクションの登録内容."""

    application_tokens: list[str] = Field(
        default_factory=list, alias="applicationTokens"
    )
    category_tokens: list[str] = Field(default_factory=list, alias="categoryTokens")
    web_domain_tokens: list[str] = Field(
        default_factory=list, alias="webDomainTokens"
    )


class MonitorsBody(BaseModel):
    activity_names: list[str] = Field(alias="activityNames")


# --- アプリケーションのライフサイクルイベント ---


# Deprecated on_event usage is temporarily retained for simplicity.
@app.on_event("startup")  # pyright: ignore[reportDeprecated]
async def startup_event() -> None:
    """アプリケーション起動時にエンジンを初期化."""
    engine = get_engine()
    log_message(f"Engine ready (store={type(engine.selections.store).__name__})")


@app.on_event("shutdown")  # pyright: ignore[reportDeprecated]
async def shutdown_event() -> None:
    engine: ShieldActionEngine | None = STATE["engine"]
    if engine is not None:
        engine.shutdown()


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(
    _request: Request, exc: StoreUnavailableError
) -> JSONResponse:
    log_message(f"Store unavailable: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Store unavailable"})


# --- ホスト向けエンドポイント ---


@app.post("/shield/action")
async def handle_shield_action(req: ShieldActionRequest) -> dict[str, Any]:
    """ボタン押下を処理し、遅延後にレスポンスを返す."""
    engine = get_engine()
    event = ShieldEvent(
        button=ButtonPressed(req.button),
        token=Token(req.token),
        kind=TokenKind(req.kind),
    )

    # アクションは即座に実行し、レスポンスだけを遅延させる
    result = await asyncio.to_thread(engine.process, event)

    STATE["last_event"] = req.model_dump()
    STATE["last_response"] = result.response.to_dict()
    STATE["last_report"] = result.report.to_list()
    failed = len(result.report.failed)
    log_message(
        f"Shield action processed. Button: {req.button} | "
        f"selection={result.selection_id or 'None'} | "
        f"actions={len(result.report.outcomes)} failed={failed} | "
        f"behavior={result.response.behavior.value}"
    )

    response = await respond_after_delay(result.response)
    return response.to_dict()


# --- 管理アプリ向けエンドポイント ---


@app.get("/selections")
async def list_selections() -> dict[str, Any]:
    selections = get_engine().selections.list_selections()
    return {"selections": [s.to_dict() for s in selections]}


@app.put("/selections/{selection_id}")
async def put_selection(selection_id: str, body: SelectionBody) -> dict[str, Any]:
    """セレクションを登録・更新する."""
    selection = Selection.of(
        selection_id,
        applicationTokens=body.application_tokens,
        categoryTokens=body.category_tokens,
        webDomainTokens=body.web_domain_tokens,
    )
    get_engine().selections.save_selection(selection)
    log_message(f"Selection saved: {selection_id} ({selection.total_tokens} tokens)")
    return {"ok": True, "selection": selection.to_dict()}


@app.delete("/selections/{selection_id}")
async def delete_selection(selection_id: str) -> dict[str, Any]:
    if not get_engine().selections.delete_selection(selection_id):
        raise HTTPException(status_code=404, detail="Selection not found")
    log_message(f"Selection deleted: {selection_id}")
    return {"ok": True}


@app.put("/config")
async def put_global_config(config: dict[str, Any]) -> dict[str, Any]:
    """全体のボタン設定を保存する."""
    selections = get_engine().selections
    selections.save_config(selections.keys.global_config_key, config)
    log_message("Global shield config updated")
    return {"ok": True}


@app.put("/config/{selection_id}")
async def put_selection_config(
    selection_id: str, config: dict[str, Any]
) -> dict[str, Any]:
    """セレクション固有のボタン設定を保存する."""
    selections = get_engine().selections
    selections.save_config(selections.selection_config_key(selection_id), config)
    log_message(f"Shield config updated for selection {selection_id}")
    return {"ok": True}


@app.put("/monitors")
async def put_monitors(body: MonitorsBody) -> dict[str, Any]:
    get_engine().selections.save_monitored_activity_names(body.activity_names)
    log_message(f"Monitored activities updated: {len(body.activity_names)}")
    return {"ok": True, "activityNames": body.activity_names}


@app.post("/blocks/{selection_id}")
async def block_selection(selection_id: str) -> dict[str, Any]:
    """セレクションのトークンをブロック対象に加える."""
    engine = get_engine()
    selection = engine.selections.get_selection(selection_id)
    if selection is None:
        raise HTTPException(status_code=404, detail="Selection not found")
    engine.mutator.block_selection(selection, triggered_by="api")
    log_message(f"Selection blocked: {selection_id}")
    return {"ok": True}


@app.get("/whitelist")
async def get_whitelist() -> dict[str, Any]:
    return get_engine().selections.get_whitelist().to_dict()


@app.get("/policy")
async def get_policy() -> dict[str, Any]:
    """現在の実効ブロックポリシーを返す."""
    policy = get_engine().selections.get_effective_policy()
    return {"policy": policy.to_dict() if policy else None}


@app.get("/status")
async def get_current_status() -> dict[str, Any]:
    """現在のシステム状態を取得する."""
    engine = get_engine()
    return {
        "selections": len(engine.selections.selection_ids()),
        "whitelisted_tokens": engine.selections.get_whitelist().total_tokens,
        "last_response": STATE["last_response"],
    }


# --- モニタリング用エンドポイント ---


@app.get("/api/monitoring_data")
async def get_monitoring_data() -> dict[str, Any]:
    """モニタリング用に最新データを提供する."""
    return {
        "last_event": STATE["last_event"],
        "last_response": STATE["last_response"],
        "last_report": STATE["last_report"],
        "logs": list(STATE["logs"]),
    }
