"""
Model of the optional crosspack.yml project file.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ProjectConfig(BaseModel):
    """
    Per-project defaults. Command line flags take precedence.
    """
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    app_id: Optional[str] = None
    app_version: Optional[str] = None
    app_build: Optional[int] = Field(default=None, ge=1)
    icon: Optional[str] = None
    engine: Optional[str] = None
    env: Dict[str, str] = {}
    tags: List[str] = []
