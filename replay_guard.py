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

重放防护模块
每个账户记录已经接受过的最大时间步计数器（水位），
只有比水位严格更大的计数器才能通过，同一个验证码最多用一次
"""

import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# 水位初始值，比任何合法计数器都小
COUNTER_SENTINEL = -1


class MemoryMarks:
    """只放在内存里的水位后端，重启就没了，测试和临时部署用"""

    def __init__(self):
        self._marks: Dict[str, int] = {}

    def get_mark(self, account: str) -> Optional[int]:
        return self._marks.get(account)

    def set_mark(self, account: str, counter: int) -> bool:
        self._marks[account] = counter
        return True


class ReplayGuard:
    """按账户加锁的 check-and-advance

    marks 是水位后端，需要有 get_mark / set_mark 两个方法（set_mark 返回是否记录成功），
    生产环境传 SecretStore，让水位跟账户一起持久化
    """

    def __init__(self, marks=None):
        self.marks = marks if marks is not None else MemoryMarks()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, account: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(account)
            if lock is None:
                lock = self._locks[account] = threading.Lock()
            return lock

    def check_and_advance(self, account: str, counter: int) -> bool:
        """计数器严格大于水位时记录为新水位并返回True，否则什么都不改返回False"""
        with self._lock_for(account):
            mark = self.marks.get_mark(account)
            if mark is None:
                mark = COUNTER_SENTINEL

            if counter <= mark:
                logger.warning(f"拒绝重放: account={account}, counter={counter}, mark={mark}")
                return False

            if not self.marks.set_mark(account, counter):
                # 后端没记下来（账户刚被删掉），不能放行
                logger.warning(f"水位未记录，拒绝: account={account}, counter={counter}")
                return False
            logger.debug(f"水位推进: account={account}, {mark} -> {counter}")
            return True

