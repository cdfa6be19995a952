from schema_agent.builder.base import SchemaModelBuilder, ScriptAction
from schema_agent.builder.hbm_xml import HbmXmlBuilder

__all__ = ["SchemaModelBuilder", "ScriptAction", "HbmXmlBuilder"]
