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

入网描述解析
把扫码得到的 otpauth://totp/<label>?secret=...&issuer=... 解析成 ProvisioningDescriptor
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, unquote, urlparse

import pyotp

from utotp import MalformedDescriptor, TotpParameters, decode_secret


@dataclass(frozen=True)
class ProvisioningDescriptor:
    """入网描述，只在入网时用一次，不会保存"""

    secret: str
    label: str = ""
    issuer: Optional[str] = None
    algorithm: Optional[str] = None
    digits: Optional[int] = None
    period: Optional[int] = None


def _parse_int(params: dict, name: str) -> Optional[int]:
    value = params.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise MalformedDescriptor(f"{name} must be an integer, got {value!r}") from None


def parse_provisioning_uri(uri: str) -> ProvisioningDescriptor:
    """解析 otpauth URI

    只有 secret 是必须的；路径里的 "Issuer:账户名" 会拆开，
    query 里的 issuer 优先于路径里的
    """
    if not uri or not uri.strip():
        raise MalformedDescriptor("provisioning uri is empty")

    parsed = urlparse(uri.strip())
    if parsed.scheme.lower() != "otpauth":
        raise MalformedDescriptor(f"invalid scheme {parsed.scheme!r}, expected 'otpauth'")
    if parsed.netloc.lower() != "totp":
        raise MalformedDescriptor(f"unsupported otp type {parsed.netloc!r}, only 'totp' is accepted")

    # 参数名有的客户端会写成大写（SECRET、ALGORITHM）
    params = {k.lower(): v for k, v in parse_qsl(parsed.query, keep_blank_values=True)}

    secret = params.get("secret", "")
    if not secret:
        raise MalformedDescriptor("provisioning uri has no secret")

    label = unquote(parsed.path.lstrip("/"))
    path_issuer = None
    if ":" in label:
        path_issuer, label = label.split(":", 1)
    label = label.strip()

    issuer = params.get("issuer") or path_issuer or None

    return ProvisioningDescriptor(
        secret=secret,
        label=label,
        issuer=issuer,
        algorithm=params.get("algorithm") or None,
        digits=_parse_int(params, "digits"),
        period=_parse_int(params, "period"),
    )


def build_provisioning_uri(secret: str, parameters: TotpParameters, label: str,
                           issuer: Optional[str] = None) -> str:
    """生成给认证器App扫码用的 otpauth URI（由pyotp负责拼接）"""
    decode_secret(secret)  # 先校验一下是不是合法的base32
    totp = pyotp.TOTP(
        secret,
        digits=parameters.digits,
        digest=parameters.algorithm.digestmod,
        interval=parameters.period,
    )
    return totp.provisioning_uri(name=label, issuer_name=issuer)
