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

鉴权模块
- AuthMiddleware：保护 /accounts 管理接口（入网、删除账户），要求管理令牌
- extract_unlock_credentials：从开门请求里取出账户和验证码
"""

import hmac
import json
import logging
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Scope, Receive, Send

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/accounts",)


def verify_token(token: str, admin_token: str) -> bool:
    """校验管理令牌（常量时间比较）"""
    if not token:
        return False
    if hmac.compare_digest(token.encode(), admin_token.encode()):
        return True

    logger.warning("管理令牌验证失败")
    return False


class AuthMiddleware:
    """管理接口鉴权中间件

    请求头格式：Authorization: Bearer <管理令牌>
    admin_token 为空时不鉴权（本地扫码入网），启动时会打警告
    """

    def __init__(self, app: ASGIApp, admin_token: str = ""):
        self.app = app
        self.admin_token = admin_token

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        # 只处理HTTP请求
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # 跳过 OPTIONS 请求（CORS 预检）
        if scope["method"] == "OPTIONS":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        path = request.url.path

        if self.admin_token and path.startswith(PROTECTED_PREFIXES):
            token = self._extract_bearer(request)
            if not verify_token(token, self.admin_token):
                await self._unauthorized_response(scope, receive, send)
                logger.warning(f"管理接口鉴权失败: {path}")
                return
            logger.debug(f"管理接口鉴权通过: path={path}")

        await self.app(scope, receive, send)

    def _extract_bearer(self, request: Request) -> str:
        auth_header = request.headers.get("Authorization", "")
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return ""
        return parts[1]

    async def _unauthorized_response(self, scope: Scope, receive: Receive, send: Send):
        """返回401未授权响应"""
        response = JSONResponse(
            status_code=401,
            content={"detail": "Unauthorized"}
        )
        await response(scope, receive, send)


def extract_unlock_credentials(request: Request, account: Optional[str],
                               totp: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """从开门请求中提取 (账户, 验证码)

    优先用JSON请求体里的字段，没有的话再看请求头：
    - Authorization: {"Id": 账户, "Totp": 验证码}（可带Bearer前缀）
    - 或者直接的 Id / Totp 自定义头
    """
    if totp:
        return account, str(totp)

    auth_header = request.headers.get("Authorization")
    if auth_header:
        auth_json_str = auth_header[7:] if auth_header.startswith("Bearer ") else auth_header
        try:
            auth_data = json.loads(auth_json_str)
        except json.JSONDecodeError:
            auth_data = None
            logger.debug("Authorization头不是JSON格式，改用自定义头")

        if isinstance(auth_data, dict) and auth_data.get("Totp"):
            header_account = auth_data.get("Id")
            return (str(header_account) if header_account else account), str(auth_data["Totp"])

    totp_from_header = request.headers.get("Totp")
    if totp_from_header:
        return request.headers.get("Id") or account, totp_from_header

    # 都没有
    return account, None
