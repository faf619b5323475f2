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

账户入网接口
- 扫认证器二维码得到 otpauth URI 后提交入网
- 或者由服务端生成密钥，返回 URI 给认证器App扫码
- 查看 / 删除账户
"""

import logging
from typing import Optional

import pyotp
from fastapi import APIRouter, Body, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from config import DEFAULT_ACCOUNT
from provisioning import (
    ProvisioningDescriptor,
    build_provisioning_uri,
    parse_provisioning_uri,
)
from utotp import TotpError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("/provision")
async def provision_account(
    request: Request,
    uri: str = Body(..., description="二维码里的 otpauth://totp/... 地址"),
    account: Optional[str] = Body(None, description="账户标识，不传则用默认账户"),
) -> JSONResponse:
    """用扫码得到的 otpauth URI 入网

    同一个账户再次入网会整体替换旧的密钥和参数
    返回里不包含密钥
    """
    account = account or DEFAULT_ACCOUNT
    store = request.app.state.store

    try:
        descriptor = parse_provisioning_uri(uri)
        entry = await run_in_threadpool(store.provision, account, descriptor)
    except TotpError as e:
        logger.warning(f"入网失败: account={account}, error={e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"入网失败（服务端错误）: account={account}, error={e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to provision account: {str(e)}"
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, **entry.public_info()}
    )


@router.post("/new")
async def create_account(
    request: Request,
    account: Optional[str] = Body(None, description="账户标识，不传则用默认账户"),
    issuer: Optional[str] = Body("SmartLock", description="认证器App里显示的发行方"),
) -> JSONResponse:
    """服务端生成新密钥并入网

    返回的 provisioning_uri 只给这一次，拿去生成二维码让认证器App扫
    """
    account = account or DEFAULT_ACCOUNT
    store = request.app.state.store

    secret = pyotp.random_base32()
    descriptor = ProvisioningDescriptor(secret=secret, label=account, issuer=issuer)
    entry = store.provision(account, descriptor)
    provisioning_uri = build_provisioning_uri(secret, entry.parameters, label=account, issuer=issuer)

    logger.info(f"创建新账户成功: account={account}")
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "provisioning_uri": provisioning_uri, **entry.public_info()}
    )


@router.get("")
async def list_accounts(request: Request) -> JSONResponse:
    """列出已入网的账户（不含密钥）"""
    entries = request.app.state.store.accounts()
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"accounts": [entry.public_info() for entry in entries]}
    )


@router.delete("/{account}")
async def revoke_account(request: Request, account: str) -> JSONResponse:
    """删除账户，之后这个账户的验证码全部失效"""
    if not request.app.state.store.revoke(account):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "account": account, "message": "Account revoked"}
    )
