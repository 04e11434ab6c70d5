# cart_service/domain/errors.py


class CartError(Exception):
    """Base class for every error raised by the cart engine."""


# rejected requests
class Unauthenticated(CartError):
    """No caller identity reached the service."""


class InvalidCartInput(CartError, ValueError):
    """Product id or quantity cannot be stored in a cart."""


# expected empty results
class CartEmpty(CartError):
    def __init__(self, user_id: str):
        super().__init__(f"No cart stored for user {user_id}")
        self.user_id = user_id


class ItemNotFound(CartError):
    def __init__(self, user_id: str, product_id: str):
        super().__init__(f"Product {product_id} is not in the cart of user {user_id}")
        self.user_id = user_id
        self.product_id = product_id


class MalformedCartData(CartError):
    """The persisted order list does not follow the line-item encoding."""


class DependencyUnavailable(CartError):
    """
    The operation could not complete because a collaborator failed.
    The persisted cart is left as it was; callers answer with a fallback.
    """


class CatalogUnavailable(DependencyUnavailable):
    pass


class ProductNotFound(DependencyUnavailable):
    def __init__(self, product_id: str):
        super().__init__(f"Catalog has no product {product_id}")
        self.product_id = product_id


class StoreUnavailable(DependencyUnavailable):
    pass


class ConcurrentModification(DependencyUnavailable):
    """The cart changed between load and write (version mismatch)."""


class ServiceOverloaded(DependencyUnavailable):
    """Admission ceiling for in-flight mutations reached."""
