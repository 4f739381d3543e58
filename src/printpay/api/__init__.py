from printpay.api.app import Services, build_services, create_app

__all__ = ["Services", "build_services", "create_app"]
