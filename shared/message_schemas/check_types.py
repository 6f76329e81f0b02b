from enum import Enum
from typing import Optional


class CheckType(Enum):
    """Detection check categories and their suppression bitmask codes.

    Policy checks run once at startup and cannot be whitelisted, so their
    code is 0.
    """
    SQLI = ("sqli", 1 << 0)
    COMMAND = ("command", 1 << 1)
    DIRECTORY = ("directory", 1 << 2)
    READFILE = ("readfile", 1 << 3)
    WRITEFILE = ("writefile", 1 << 4)
    FILEUPLOAD = ("fileupload", 1 << 5)
    RENAME = ("rename", 1 << 6)
    XXE = ("xxe", 1 << 7)
    OGNL = ("ognl", 1 << 8)
    DESERIALIZATION = ("deserialization", 1 << 9)
    WEBDAV = ("webdav", 1 << 10)
    INCLUDE = ("include", 1 << 11)
    SSRF = ("ssrf", 1 << 12)
    SQL_EXCEPTION = ("sql_exception", 1 << 13)
    REQUEST = ("request", 1 << 14)
    DELETEFILE = ("deletefile", 1 << 15)
    MONGODB = ("mongodb", 1 << 16)
    LOADLIBRARY = ("loadlibrary", 1 << 17)
    SSRF_REDIRECT = ("ssrf_redirect", 1 << 18)
    RESPONSE = ("response", 1 << 19)
    LINK = ("link", 1 << 20)
    POLICY_LOG = ("log", 0)
    POLICY_SQL_CONNECTION = ("sql_connection", 0)
    POLICY_SERVER_TOMCAT = ("tomcat_server", 0)
    POLICY_SERVER_WEBSPHERE = ("websphere_server", 0)

    def __init__(self, type_name: str, code: int):
        self.type_name = type_name
        self.code = code

    @classmethod
    def from_name(cls, name: str) -> Optional["CheckType"]:
        """Look a check type up by member name or type name, case-insensitively."""
        wanted = str(name).strip()
        member = cls.__members__.get(wanted.upper())
        if member is not None:
            return member
        for check_type in cls:
            if check_type.type_name == wanted.lower():
                return check_type
        return None

    @classmethod
    def full_mask(cls) -> int:
        """Sum of every non-zero check code."""
        return sum(check_type.code for check_type in cls if check_type.code != 0)
