from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


def envelope(
    data: Union[BaseModel, List[Any], Dict[str, Any], None] = None,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """Success body: ``{"success": true, "message"?, "data"?}``."""
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = _dump(data)
    return body
