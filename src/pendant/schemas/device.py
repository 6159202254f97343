from typing import Any

import pydantic

class HidDeviceInfo(pydantic.BaseModel):
    vendor_id: int
    product_id: int
    path: str
    manufacturer: str = ""
    product: str = ""
    usage_page: int = 0
    usage: int = 0

    @classmethod
    def from_enumeration(cls, info: dict[str, Any]) -> "HidDeviceInfo":
        """
        Build from an entry returned by hid.enumerate().

        Args:
            info: Raw enumeration dictionary

        Returns:
            HidDeviceInfo with decoded path and strings
        """
        path = info.get("path", b"")
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="ignore")
        return cls(
            vendor_id=info.get("vendor_id", 0),
            product_id=info.get("product_id", 0),
            path=path,
            manufacturer=info.get("manufacturer_string") or "",
            product=info.get("product_string") or "",
            usage_page=info.get("usage_page", 0),
            usage=info.get("usage", 0)
        )

class HidConnection(pydantic.BaseModel):
    vendor_id: int
    product_id: int
    device: Any

    model_config = {"arbitrary_types_allowed": True}

    def close(self) -> None:
        self.device.close()
