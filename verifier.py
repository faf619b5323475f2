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

验证码校验模块
门锁控制器每次收到开门请求都会调用 Verifier.verify，
结合账户存储、TOTP计算和重放防护，判断这次能不能开门
"""

import hmac
import logging
from enum import Enum

from utotp import compute_code, derive_counter

logger = logging.getLogger(__name__)

# 时钟偏差容忍窗口：先看当前时间步，再看上一个，最后看下一个
# 只允许前后各一个周期，放宽会成倍增加被猜中的概率
SKEW_OFFSETS = (0, -1, 1)

_OFFSET_NAMES = {0: "刚好", -1: "慢了一点点", 1: "快了一点点"}


class Decision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED_INVALID_CODE = "rejected_invalid_code"
    REJECTED_REPLAY = "rejected_replay"
    REJECTED_UNKNOWN_ACCOUNT = "rejected_unknown_account"

    @property
    def accepted(self) -> bool:
        return self is Decision.ACCEPTED


class Verifier:
    """TOTP校验器

    拒绝是正常结果，用返回值表示，不抛异常
    """

    def __init__(self, store, guard):
        self.store = store
        self.guard = guard

    def verify(self, account: str, claimed_code: str, now: float) -> Decision:
        """判断验证码对这个账户当前是否有效

        Args:
            account: 账户标识
            claimed_code: 用户从认证器App拿到的验证码
            now: 当前Unix时间戳（秒），由调用方传入

        Returns:
            Decision: 校验结果
        """
        entry = self.store.lookup(account)
        if entry is None:
            logger.warning(f"验证失败：找不到账户: {account}")
            return Decision.REJECTED_UNKNOWN_ACCOUNT

        params = entry.parameters
        code = (claimed_code or "").strip()
        base_counter = derive_counter(now, params.period)

        # 格式不对的验证码也照样走一遍比较，不提前返回
        well_formed = len(code) == params.digits and code.isdigit()

        for offset in SKEW_OFFSETS:
            counter = base_counter + offset
            if counter < 0:
                continue
            expected = compute_code(entry.secret, params.algorithm, params.digits, counter)
            if not hmac.compare_digest(expected.encode(), code.encode()) or not well_formed:
                continue

            if not self.guard.check_and_advance(account, counter):
                logger.warning(f"验证失败（重放）: account={account}, counter={counter}")
                return Decision.REJECTED_REPLAY

            logger.info(f"验证通过（{_OFFSET_NAMES[offset]}）: account={account}, offset={offset}")
            return Decision.ACCEPTED

        logger.warning(f"验证失败（验证码错误）: account={account}")
        return Decision.REJECTED_INVALID_CODE
