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

开门执行模块
验证通过后通知门锁控制器开门（舵机由控制器负责驱动）
没配置控制器地址时只打日志，方便本地调试
"""

import logging

import requests

logger = logging.getLogger(__name__)


class DoorError(RuntimeError):
    """控制器返回错误或者连不上"""


class DoorTimeout(DoorError):
    pass


class LoggingDoorActuator:
    """不连控制器，只记录一条开门日志"""

    def open(self, account: str) -> None:
        logger.info(f"[调试模式] 开门: account={account}")


class HttpDoorActuator:
    """通过HTTP通知门锁控制器开门

    验证已经在这边做完了，不再把验证码转发给控制器
    """

    def __init__(self, url: str, timeout: float = 5.0, session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def open(self, account: str) -> None:
        try:
            resp = self.session.post(self.url, json={"account": account}, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"门锁控制器超时: url={self.url}, timeout={self.timeout}s")
            raise DoorTimeout(f"lock controller timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.error(f"连接门锁控制器失败: url={self.url}, error={e}")
            raise DoorError(f"lock controller unreachable: {e}") from e

        if not resp.ok:
            logger.error(f"门锁控制器返回错误: status={resp.status_code}, body={resp.text[:200]}")
            raise DoorError(f"lock controller returned {resp.status_code}")

        logger.info(f"开门指令已发送: account={account}, status={resp.status_code}")


def make_actuator(url: str, timeout: float):
    """根据配置选择执行器"""
    if url:
        return HttpDoorActuator(url, timeout=timeout)
    logger.warning("未配置门锁控制器地址，开门只会记录日志")
    return LoggingDoorActuator()
