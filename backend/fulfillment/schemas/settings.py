from typing import Optional

from pydantic import BaseModel


class SystemSettingRead(BaseModel):
    key: str
    value: Optional[str] = None
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class SystemSettingUpdate(BaseModel):
    value: str
    description: Optional[str] = None
