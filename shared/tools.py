"""Catalogue of supported ETL tools"""
from typing import Dict, List

TOOLS: List[Dict[str, str]] = [
    {"id": "Talend", "name": "Talend (Qlik)", "description": "Open Studio, Data Fabric"},
    {"id": "Informatica", "name": "Informatica", "description": "PowerCenter, IDMC"},
    {"id": "DataStage", "name": "IBM DataStage", "description": "InfoSphere, Cloud Pak"},
    {"id": "SSIS", "name": "SSIS", "description": "SQL Server Integration"},
    {"id": "Matillion", "name": "Matillion", "description": "Cloud ETL"},
    {"id": "AbInitio", "name": "Ab Initio", "description": "High Volume Processing"},
    {"id": "Pentaho", "name": "Pentaho", "description": "Kettle, PDI"},
    {"id": "AWSGlue", "name": "AWS Glue", "description": "Serverless ETL"},
    {"id": "AzureDF", "name": "Azure Data Factory", "description": "Hybrid Integration"},
]
