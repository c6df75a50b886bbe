from rexon.models.user import User, AUTH_PROVIDERS, USER_ROLES
from rexon.models.customer import Customer
from rexon.models.agent import Agent, AgentDomain, AGENT_STATUSES
from rexon.models.warehouse import Warehouse, WAREHOUSE_STATUSES
from rexon.models.upload import Upload
from rexon.models.settings import SystemSetting, DEFAULT_SYSTEM_SETTINGS

__all__ = [
    "User",
    "Customer",
    "Agent",
    "AgentDomain",
    "Warehouse",
    "Upload",
    "SystemSetting",
    "AUTH_PROVIDERS",
    "USER_ROLES",
    "AGENT_STATUSES",
    "WAREHOUSE_STATUSES",
    "DEFAULT_SYSTEM_SETTINGS",
]
