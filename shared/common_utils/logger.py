from os import environ
from datetime import datetime
from zoneinfo import ZoneInfo
from logging import StreamHandler, Logger, NOTSET
from colorlog import ColoredFormatter


class SingletonMeta(type):
    _instance = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instance:
            instance = super().__call__(*args, **kwargs)
            cls._instance[cls] = instance
        return cls._instance[cls]


class RaspLogger(Logger, metaclass=SingletonMeta):
    _initialized = False

    def __init__(self):
        if RaspLogger._initialized:
            return

        super().__init__(name="RaspLogger", level=environ.get("LOG_LEVEL", NOTSET))

        self._tz = ZoneInfo(environ.get("RASP_LOG_TZ", "UTC"))
        local_formatter = ColoredFormatter(
            "%(log_color)s%(asctime)s | %(levelname)s | %(threadName)s | %(msg)s",
            datefmt="%d-%m-%Y, %H:%M:%S",
            log_colors={
                "DEBUG": "blue",
                "INFO": "",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        local_formatter.converter = self.local_time

        console_handler = StreamHandler()
        console_handler.setFormatter(local_formatter)
        self.addHandler(console_handler)

        RaspLogger._initialized = True

    def local_time(self, timestamp=None):
        if timestamp is None:
            return datetime.now(tz=self._tz).timetuple()
        return datetime.fromtimestamp(timestamp, tz=self._tz).timetuple()


logger = RaspLogger()
