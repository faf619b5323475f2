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

配置模块
用于管理账户存储目录、门锁控制器地址和全局设置
"""

import logging
import os
from pathlib import Path

# 基础配置
BASE_DIR = Path(__file__).parent.absolute()  # 项目根目录

# 存储相关配置
# 账户数据（密钥+参数+重放水位）都放在storage目录下，备份时一起备份
STORAGE_DIR = Path(os.environ.get("SMARTLOCK_STORAGE_DIR", BASE_DIR / "storage"))
ACCOUNTS_FILE = STORAGE_DIR / "accounts.json"

# 请求里没带账户时使用的默认账户（单门部署，扫码入网时也存到这个账户下）
DEFAULT_ACCOUNT = os.environ.get("SMARTLOCK_DEFAULT_ACCOUNT", "door")

# 管理接口（/accounts）的令牌，留空表示不鉴权（仅限本地入网）
ADMIN_TOKEN = os.environ.get("SMARTLOCK_ADMIN_TOKEN", "")

# 门锁控制器配置，留空则只打日志不真正开门
CONTROLLER_URL = os.environ.get("SMARTLOCK_CONTROLLER_URL", "")
CONTROLLER_TIMEOUT = float(os.environ.get("SMARTLOCK_CONTROLLER_TIMEOUT", "5"))

# 日志配置
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def ensure_dirs() -> None:
    """确保必要的目录存在"""
    STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    logging.debug(f"确保目录存在: {STORAGE_DIR}")
