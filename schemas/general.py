from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Every /api response except search is {"success": bool, "data"?: ..., "error"?: str}


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": jsonable_encoder(data)})


def fail(error: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})
