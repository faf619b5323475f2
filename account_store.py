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

账户存储模块
用于管理账户和TOTP密钥的对应关系
存储格式：{account: {secret, algorithm, digits, period, issuer, label, created_at, last_counter}} 的JSON文件
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from provisioning import ProvisioningDescriptor
from replay_guard import COUNTER_SENTINEL
from utotp import (
    Algorithm,
    TotpParameters,
    decode_secret,
    encode_secret,
    normalize_parameters,
)

logger = logging.getLogger(__name__)


class StoreCorrupted(RuntimeError):
    """账户文件损坏，不能当成空文件继续用，否则所有账户都丢了"""


@dataclass(frozen=True)
class AccountEntry:
    account: str
    secret: bytes
    parameters: TotpParameters
    issuer: Optional[str] = None
    label: str = ""
    created_at: str = ""

    def public_info(self) -> Dict:
        """给管理接口返回用，不包含密钥"""
        return {
            "account": self.account,
            "issuer": self.issuer,
            "label": self.label,
            "algorithm": self.parameters.algorithm.value,
            "digits": self.parameters.digits,
            "period": self.parameters.period,
            "created_at": self.created_at,
        }


def _rescale_mark(mark: int, old_period: int, new_period: int) -> int:
    """周期变了之后，把旧水位换算成新周期下与之重叠的最后一个时间步"""
    if mark < 0 or old_period == new_period:
        return mark
    last_second = (mark + 1) * old_period - 1
    return last_second // new_period


class SecretStore:
    """持久化的账户存储

    内存里保存不可变的 AccountEntry 快照，修改时整条替换再原子写盘；
    同一个账户的写操作串行，不同账户互不阻塞
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: Dict[str, AccountEntry] = {}
        self._marks: Dict[str, int] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._file_lock = threading.Lock()
        self._load()

    def _lock_for(self, account: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(account)
            if lock is None:
                lock = self._locks[account] = threading.Lock()
            return lock

    def _load(self) -> None:
        """从文件加载账户数据，文件不存在就当成没有账户"""
        if not self.path.exists():
            logger.info(f"账户文件不存在，从空存储开始: {self.path}")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreCorrupted(f"account file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise StoreCorrupted(f"account file {self.path} must contain an object, got {type(data).__name__}")

        for account, record in data.items():
            try:
                parameters = TotpParameters(
                    algorithm=Algorithm(record["algorithm"]),
                    digits=int(record["digits"]),
                    period=int(record["period"]),
                )
                self._entries[account] = AccountEntry(
                    account=account,
                    secret=decode_secret(record["secret"]),
                    parameters=parameters,
                    issuer=record.get("issuer"),
                    label=record.get("label", ""),
                    created_at=record.get("created_at", ""),
                )
                self._marks[account] = int(record.get("last_counter", COUNTER_SENTINEL))
            except (KeyError, TypeError, ValueError) as e:
                raise StoreCorrupted(f"bad record for account {account!r}: {e}") from e

        logger.info(f"已加载 {len(self._entries)} 个账户: {self.path}")

    def _write_file(self, entries: Dict[str, AccountEntry], marks: Dict[str, int]) -> None:
        """写临时文件 -> fsync -> os.replace，读者只会看到旧文件或新文件

        调用方必须持有 _file_lock
        """
        data = {}
        for account, entry in entries.items():
            data[account] = {
                "secret": encode_secret(entry.secret),
                "algorithm": entry.parameters.algorithm.value,
                "digits": entry.parameters.digits,
                "period": entry.parameters.period,
                "issuer": entry.issuer,
                "label": entry.label,
                "created_at": entry.created_at,
                "last_counter": marks.get(account, COUNTER_SENTINEL),
            }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".accounts-", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            # 写失败要把临时文件清掉，原文件保持不变
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug(f"账户数据已保存，共 {len(data)} 个账户")

    def _commit(self, account: str, entry: Optional[AccountEntry], mark: Optional[int]) -> None:
        """替换（entry为None时删除）一个账户并写盘

        先在副本上修改，写盘成功后再换上，写失败时内存里还是旧数据
        """
        with self._file_lock:
            entries = dict(self._entries)
            marks = dict(self._marks)
            if entry is None:
                entries.pop(account, None)
                marks.pop(account, None)
            else:
                entries[account] = entry
                marks[account] = mark
            self._write_file(entries, marks)
            self._entries = entries
            self._marks = marks

    def provision(self, account: str, descriptor: ProvisioningDescriptor) -> AccountEntry:
        """用入网描述创建或整体替换账户

        先解码密钥、规范化参数，全部成功后再一次性替换，不会出现只改了一半的情况
        """
        secret = decode_secret(descriptor.secret)
        parameters = normalize_parameters(descriptor)

        with self._lock_for(account):
            previous = self._entries.get(account)
            entry = AccountEntry(
                account=account,
                secret=secret,
                parameters=parameters,
                issuer=descriptor.issuer,
                label=descriptor.label,
                created_at=datetime.now().isoformat(),
            )

            # 重新入网不清空重放水位，只按新周期换算
            if previous is None:
                mark = COUNTER_SENTINEL
            else:
                mark = _rescale_mark(
                    self._marks.get(account, COUNTER_SENTINEL),
                    previous.parameters.period,
                    parameters.period,
                )
            self._commit(account, entry, mark)

        if previous is None:
            logger.info(f"账户入网成功: account={account}")
        else:
            logger.info(f"账户已重新入网，旧密钥被替换: account={account}")
        return entry

    def lookup(self, account: str) -> Optional[AccountEntry]:
        """根据账户获取密钥和参数，找不到就返回None"""
        return self._entries.get(account)

    def revoke(self, account: str) -> bool:
        """删除账户（连同重放水位），返回是否真的删除了"""
        with self._lock_for(account):
            if account not in self._entries:
                return False
            self._commit(account, None, None)

        logger.info(f"已删除账户: {account}")
        return True

    def accounts(self) -> List[AccountEntry]:
        return sorted(self._entries.values(), key=lambda entry: entry.account)

    # 下面两个方法给 ReplayGuard 当水位后端用，保证重启之后水位还在

    def get_mark(self, account: str) -> Optional[int]:
        return self._marks.get(account)

    def set_mark(self, account: str, counter: int) -> bool:
        with self._lock_for(account):
            if account not in self._entries:
                # 验证途中账户被删了，水位跟着账户一起没了
                logger.warning(f"账户已不存在，忽略水位更新: account={account}")
                return False
            self._commit(account, self._entries[account], counter)
            return True
