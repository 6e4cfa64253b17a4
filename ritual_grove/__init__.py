"""ritual-grove - 项目模板包（ritual）注册表与依赖解析引擎"""

__version__ = "0.2.0"
