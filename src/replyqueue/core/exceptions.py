"""ReplyQueue 异常体系

可恢复的常规情况（claim 未命中、锁不存在、尚未确认）以返回值表达，
只有存储层故障与非法输入才抛出异常。
"""


class ReplyQueueError(Exception):
    """ReplyQueue 基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方整体重试请求是否可能成功
        """
        super().__init__(message)
        self.recoverable = recoverable


class StoreUnavailableError(ReplyQueueError):
    """任务目录无法创建/写入，或 rename 因“已被认领”以外的原因失败"""

    def __init__(self, path: str, original_error: Exception) -> None:
        """
        Args:
            path: 出错的文件或目录
            original_error: 原始 OSError
        """
        super().__init__(
            f"Task store unavailable: {path} -- {original_error}",
            recoverable=True,
        )
        self.path = path
        self.original_error = original_error


class InvalidLockError(ReplyQueueError):
    """锁标识在语法上不是合法的锁（缺少后缀、包含路径分隔符等）"""

    def __init__(self, lock_id: str) -> None:
        super().__init__(f"Invalid lock id: {lock_id!r}")
        self.lock_id = lock_id


class InvalidAccountError(ReplyQueueError):
    """账户名无法安全编码进任务文件名"""

    def __init__(self, account: str) -> None:
        super().__init__(f"Invalid account name: {account!r}")
        self.account = account


class CorruptTaskError(ReplyQueueError):
    """任务文件存在但内容无法解析为 Task"""

    def __init__(self, file_name: str) -> None:
        super().__init__(f"Task file is corrupt: {file_name}")
        self.file_name = file_name
