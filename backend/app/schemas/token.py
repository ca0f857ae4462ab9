import enum
from datetime import datetime
from pydantic import BaseModel, Field

class TokenClass(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"

class TokenData(BaseModel):
    """
    Verified claims of a token (signature, class and expiry already checked)
    """
    user_id: int
    token_class: TokenClass
    issued_at: datetime
    expires_at: datetime

class TokenPair(BaseModel):
    """
    Access/refresh pair returned to the client (camelCase on the wire)
    """
    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")
