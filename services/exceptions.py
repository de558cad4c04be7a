# services/exceptions.py


class MissionControlError(Exception):
    """Base error of the task core"""


class StoreError(MissionControlError):
    """Task store read/write failed"""


class BlobUploadError(StoreError):
    """Attachment could not be stored"""
