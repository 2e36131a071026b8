"""Payment driver used when payments are disabled. Performs no I/O."""

from storefront.providers.payments.port import PaymentProcessor


class NullPaymentDriver(PaymentProcessor):
    def create_product(self, product):
        return None

    def get_product(self, product):
        return None

    def update_product(self, product):
        return None

    def delete_product(self, product):
        return False

    def list_products(self, filters=None):
        return []

    def create_price(self, price):
        return None

    def get_price(self, price):
        return None

    def update_price(self, price):
        return None

    def change_price(self, price):
        return None

    def delete_price(self, price):
        return False

    def list_prices(self, product, filters=None):
        return []

    def create_payment_method(self, user, payment_method_id):
        return None

    def list_payment_methods(self, user):
        return []

    def update_payment_method(self, user, payment_method_id, is_default=False):
        return None

    def delete_payment_method(self, user, payment_method_id):
        return False

    def search_customer(self, field, value):
        return None

    def create_customer(self, user, force=False):
        return None

    def get_customer(self, user):
        return None

    def delete_customer(self, user):
        return False

    def sync_customer_information(self, user):
        return False

    def create_coupon(self, discount, amount=None):
        return None

    def start_subscription(self, order):
        return None

    def swap_subscription(self, user, price):
        return None

    def cancel_subscription(self, user, cancel_now=False, reason=None):
        return False

    def continue_subscription(self, user):
        return False

    def update_subscription(self, user, options):
        return None

    def current_subscription(self, user):
        return None

    def list_subscriptions(self, user, filters=None):
        return []

    def get_checkout_url(self, order):
        return False

    def process_checkout_success(self, order):
        return False

    def process_checkout_cancel(self, order):
        return False

    def refund_order(self, order, reason=None, notes=None):
        return False

    def cancel_order(self, order):
        return False

    def get_billing_portal_url(self, user, return_url=None):
        return None

    def find_invoice(self, invoice_id, params=None):
        return None
