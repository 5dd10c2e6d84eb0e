"""全局日志管理器"""
import logging
import os
import time
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init

# 初始化 colorama 以支持 Windows 终端颜色
init(autoreset=True)

LOGGER_NAME = "ApertureAgent"


def _get_default_log_dir() -> str:
    """获取默认日志目录（延迟加载，避免循环导入）"""
    try:
        from config.paths import get_paths
        return str(get_paths().logs_dir)
    except RuntimeError:
        # 未初始化路径配置时回退项目默认 logs 目录
        return str(Path(__file__).parent.parent / "logs")


class ColoredFormatter(logging.Formatter):
    """
    控制台彩色日志格式

    格式: [时间] [级别] [函数名:行号] - 消息
    """
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, Fore.WHITE)
        asctime = self.formatTime(record, self.datefmt)
        line = (
            f"{Fore.WHITE}[{asctime}]{Style.RESET_ALL} "
            f"{color}[{record.levelname}]{Style.RESET_ALL} "
            f"{Fore.MAGENTA}[{record.funcName}:{record.lineno}]{Style.RESET_ALL} - "
            f"{record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class GlobalLogger:
    """
    进程级日志单例

    控制台输出彩色日志 文件日志按天写入 logs/YYYY-MM-DD/app.log
    """
    _instance = None
    _logger: Optional[logging.Logger] = None
    _log_to_file = False
    _log_dir_root: Optional[str] = None
    _file_handler: Optional[logging.FileHandler] = None
    _file_date: Optional[str] = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(GlobalLogger, cls).__new__(cls)
            cls._instance._initialize_logger()
        return cls._instance

    def _initialize_logger(self):
        """初始化 logger 实例与控制台 Handler"""
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False  # 防止重复打印

        level_name = os.environ.get("APERTURE_LOG_LEVEL", "INFO").upper()
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, level_name, logging.INFO))
        console_handler.setFormatter(ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        self._logger.addHandler(console_handler)

    @property
    def raw(self) -> logging.Logger:
        """底层 logging.Logger 对象 供测试 caplog 等场景挂载 Handler"""
        return self._logger

    def set_file_logging(self, enable: bool, root_dir: Optional[str] = None):
        """
        配置是否启用文件日志及存储路径

        Args:
            enable (bool): 是否写文件
            root_dir (Optional[str]): 日志根目录 为空时使用路径配置中的 logs 目录
        """
        self._log_to_file = enable
        self._log_dir_root = root_dir
        if not enable:
            self._drop_file_handler()

    def _drop_file_handler(self):
        if self._file_handler is not None:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None
            self._file_date = None

    def _ensure_file_handler(self):
        """
        按日期切换文件 Handler

        同一天内复用已打开的 Handler 跨天时关闭旧文件并打开新目录下的 app.log
        """
        current_date = time.strftime("%Y-%m-%d")
        if self._file_handler is not None and self._file_date == current_date:
            return

        self._drop_file_handler()
        root = self._log_dir_root or _get_default_log_dir()
        daily_log_dir = os.path.join(root, current_date)
        os.makedirs(daily_log_dir, exist_ok=True)

        handler = logging.FileHandler(os.path.join(daily_log_dir, "app.log"), encoding='utf-8')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        self._logger.addHandler(handler)
        self._file_handler = handler
        self._file_date = current_date

    def _log(self, level: int, message, *args, exc_info=False):
        if self._log_to_file:
            self._ensure_file_handler()
        # stacklevel=3 跳过 _log 与公共方法 让 funcName/lineno 指向实际调用者
        self._logger.log(level, message, *args, exc_info=exc_info, stacklevel=3)

    # --- 公共接口 ---
    def debug(self, msg, *args):
        self._log(logging.DEBUG, msg, *args)

    def info(self, msg, *args):
        self._log(logging.INFO, msg, *args)

    def warning(self, msg, *args):
        self._log(logging.WARNING, msg, *args)

    def error(self, msg, *args, exc_info=False):
        self._log(logging.ERROR, msg, *args, exc_info=exc_info)

    def critical(self, msg, *args):
        self._log(logging.CRITICAL, msg, *args)

    def exception(self, msg, *args):
        """记录错误日志并附带当前异常堆栈"""
        self._log(logging.ERROR, msg, *args, exc_info=True)


# 创建全局单例
logger = GlobalLogger()
