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

主应用入口
FastAPI应用初始化、中间件设置、路由注册
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from account_store import SecretStore
from auth import AuthMiddleware
from config import (
    ACCOUNTS_FILE,
    ADMIN_TOKEN,
    CONTROLLER_TIMEOUT,
    CONTROLLER_URL,
    LOG_FORMAT,
    LOG_LEVEL,
    ensure_dirs,
)
from door import make_actuator
from enroll import router as enroll_router
from replay_guard import ReplayGuard
from unlock import router as unlock_router
from verifier import Verifier

# 配置日志
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def create_app(
    accounts_file: Optional[Path] = None,
    actuator=None,
    admin_token: Optional[str] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """创建应用

    参数都有默认值（取自config），测试时可以换成临时文件、假的执行器和固定时钟
    """
    app = FastAPI(
        title="智能门锁TOTP验证服务",
        description="扫码入网、验证码开门，密钥和比对都只在服务端",
        version="1.0.0",
        docs_url="/docs",  # Swagger UI
        redoc_url="/redoc",  # ReDoc
    )

    if accounts_file is None:
        ensure_dirs()
        accounts_file = ACCOUNTS_FILE
    if admin_token is None:
        admin_token = ADMIN_TOKEN
    if actuator is None:
        actuator = make_actuator(CONTROLLER_URL, CONTROLLER_TIMEOUT)

    # 水位跟账户存在同一个文件里，重启之后已经用过的验证码还是用不了
    store = SecretStore(accounts_file)
    app.state.store = store
    app.state.verifier = Verifier(store, ReplayGuard(store))
    app.state.actuator = actuator
    app.state.clock = clock

    if not admin_token:
        logger.warning("未设置管理令牌（SMARTLOCK_ADMIN_TOKEN），/accounts 接口不鉴权，仅限本地入网使用")

    # 添加CORS中间件（扫码页面可能跑在别的端口上）
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # AuthMiddleware 放在 CORS 之后
    app.add_middleware(AuthMiddleware, admin_token=admin_token)

    # 注册路由
    app.include_router(unlock_router)
    app.include_router(enroll_router)

    @app.get("/")
    async def root():
        """根路径，返回服务状态"""
        return {
            "service": "智能门锁TOTP验证服务",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "unlock": "/unlock",
                "accounts": "/accounts/*",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health_check():
        """健康检查接口"""
        return {"status": "healthy"}

    logger.info(f"应用初始化完成: accounts={accounts_file}")
    return app


app = create_app()


# 启动应用（仅供直接运行，uvicorn会使用此模块）
if __name__ == "__main__":
    import uvicorn

    logger.info("启动服务器...")
    logger.info("接口文档：http://localhost:8005/docs")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",  # 监听所有地址
        port=8005,       # 端口
        log_level="info",
    )
