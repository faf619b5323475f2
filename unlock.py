"""
Copyright (C) 2026 Jiale Xu (许嘉乐) (ANTmmmmm) <https://github.com/ant-cave>
Email: ANTmmmmm@outlook.com, ANTmmmmm@126.com, 1504596931@qq.com

Copyright (C) 2026 Xinhang Chen (陈欣航) <https://github.com/cxh09>
Email: abc.cxh2009@foxmail.com

Copyright (C) 2026 Zimo Wen (温子墨) <https://github.com/lusamaqq>
Email: 1220594170@qq.com

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.

开门接口
收到验证码 -> 校验 -> 通知控制器开门
所有拒绝原因对外都是同一个提示，不告诉对方是账户不存在还是验证码错了
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from auth import extract_unlock_credentials
from config import DEFAULT_ACCOUNT
from door import DoorError, DoorTimeout

logger = logging.getLogger(__name__)
router = APIRouter(tags=["unlock"])


def _denied() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"ok": False, "message": "Access denied"}
    )


@router.post("/unlock")
async def unlock(
    request: Request,
    totp: Optional[str] = Body(None, description="认证器App上显示的验证码"),
    account: Optional[str] = Body(None, description="账户标识，不传则用默认账户"),
) -> JSONResponse:
    """开门

    请求体：{"totp": "123456", "account": "door"}
    也兼容把账户和验证码放在请求头里（见 auth.extract_unlock_credentials）
    """
    account, code = extract_unlock_credentials(request, account, totp)
    account = account or DEFAULT_ACCOUNT

    if not code:
        logger.warning(f"开门请求缺少验证码: account={account}")
        return _denied()

    verifier = request.app.state.verifier
    clock = request.app.state.clock
    # 校验会写盘、开门会发HTTP请求，都放到线程池里，不阻塞事件循环
    decision = await run_in_threadpool(verifier.verify, account, code, clock())

    if not decision.accepted:
        # 内部日志区分原因，对外统一拒绝
        logger.info(f"拒绝开门: account={account}, decision={decision.value}")
        return _denied()

    try:
        await run_in_threadpool(request.app.state.actuator.open, account)
    except DoorTimeout:
        return JSONResponse(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            content={"ok": False, "message": "timeout"}
        )
    except DoorError:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"ok": False, "message": "Lock controller unavailable"}
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"ok": True, "message": "Door opened"}
    )
