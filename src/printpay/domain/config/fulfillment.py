"""Fulfillment (Printify) configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class FulfillmentConfig(BaseModel):
    """Configuration for the Printify print-on-demand API.

    Order submission may use a separate shop/token pair; when unset the
    catalog credentials are reused.
    """

    base_url: str = "https://api.printify.com/v1"
    api_token: Optional[str] = None
    shop_id: Optional[str] = None
    order_api_token: Optional[str] = None
    order_shop_id: Optional[str] = None
    blueprint_id: int = 706
    print_provider_id: int = 99
    timeout: float = Field(60.0, gt=0.0)
    user_agent: str = "printpay/0.1"

    @property
    def effective_order_token(self) -> Optional[str]:
        return self.order_api_token or self.api_token

    @property
    def effective_order_shop_id(self) -> Optional[str]:
        return self.order_shop_id or self.shop_id
