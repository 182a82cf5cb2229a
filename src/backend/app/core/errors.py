# app/core/errors.py
"""
アプリ全体のエラー分類．
サービス層はHTTPを知らずにこれらを送出し，main.pyで登録したハンドラがJSONレスポンスに変換する．
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

class SpotServiceError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

class PermissionDeniedError(SpotServiceError):
    status_code = 403

class NotFoundError(SpotServiceError):
    status_code = 404

class SpotValidationError(SpotServiceError):
    """
    ネットワーク呼び出しの前に検出される入力エラー．errorsはフィールド名 -> メッセージ．
    """
    status_code = 422

    def __init__(self, errors: dict[str, str]):
        super().__init__("入力内容に誤りがあります．")
        self.errors = dict(errors)

class BackendReadError(SpotServiceError):
    # 読み込み失敗は同じリクエストを再送すればよい．
    status_code = 503
    retryable = True

class BackendWriteError(SpotServiceError):
    # 書き込み失敗．フォームの状態は呼び出し側に残っているので再送可能．
    status_code = 502
    retryable = True

class FeedFormatError(SpotServiceError):
    status_code = 422

async def spot_service_error_handler(request: Request, exc: SpotServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    body = {'detail': exc.detail, 'retryable': exc.retryable}
    if isinstance(exc, SpotValidationError):
        body['errors'] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SpotServiceError, spot_service_error_handler)
