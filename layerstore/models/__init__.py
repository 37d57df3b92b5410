"""SQLAlchemy models."""

from layerstore.models.account import Account, AccountPlatform, AccountPlatformData
from layerstore.models.application import Application
from layerstore.models.application_global_setting import ApplicationGlobalSetting
from layerstore.models.application_process import ApplicationProcess, ApplicationProcessLog
from layerstore.models.application_setting import ApplicationSetting
from layerstore.models.application_user_setting import ApplicationUserSetting
from layerstore.models.member_activity_stat import MemberActivityStat

__all__ = [
    "Account",
    "AccountPlatform",
    "AccountPlatformData",
    "Application",
    "ApplicationGlobalSetting",
    "ApplicationProcess",
    "ApplicationProcessLog",
    "ApplicationSetting",
    "ApplicationUserSetting",
    "MemberActivityStat",
]
