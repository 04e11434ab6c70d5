from cart_service.data.models.cart import CartModel

__all__ = ["CartModel"]
