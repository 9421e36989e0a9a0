"""GameTribe 成长体系服务"""

__version__ = "0.1.0"
