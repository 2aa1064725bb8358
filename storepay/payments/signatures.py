"""
Gateway signature and checksum helpers.

Pure functions: no I/O, no settings. Every comparison is constant time and an
empty signature, key or secret never verifies.
"""
import hashlib
import hmac
from typing import Optional, Sequence, Union

from paytmchecksum import PaytmChecksum


def _equal(expected: str, supplied: Optional[str]) -> bool:
    if not supplied:
        return False
    return hmac.compare_digest(expected.encode(), supplied.encode())


# ---------------------------------------------
# RAZORPAY
# ---------------------------------------------

def razorpay_signature(order_id: str, payment_id: str, key_secret: str) -> str:
    """HMAC-SHA256 hex of 'order_id|payment_id' keyed by the key secret."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(key_secret.encode(), message, hashlib.sha256).hexdigest()


def verify_razorpay_signature(order_id: str, payment_id: str, signature: str, key_secret: str) -> bool:
    if not (order_id and payment_id and signature and key_secret):
        return False
    return _equal(razorpay_signature(order_id, payment_id, key_secret), signature)


# ---------------------------------------------
# PHONEPE
# ---------------------------------------------

def phonepe_x_verify(body: str, path: str, salt_key: str, salt_index: str) -> str:
    """X-VERIFY header: sha256(body + path + salt_key) + '###' + salt_index."""
    digest = hashlib.sha256(f"{body}{path}{salt_key}".encode()).hexdigest()
    return f"{digest}###{salt_index}"


def verify_phonepe_callback(response_b64: str, x_verify: str, salt_key: str) -> bool:
    """Check the X-VERIFY PhonePe sends with its server callback."""
    if not (response_b64 and x_verify and salt_key):
        return False
    checksum = x_verify.split("###", 1)[0]
    expected = hashlib.sha256(f"{response_b64}{salt_key}".encode()).hexdigest()
    return _equal(expected, checksum)


# ---------------------------------------------
# PAYU
# ---------------------------------------------

def _udfs(udfs: Sequence[str]) -> list:
    values = list(udfs)[:5]
    return values + [""] * (5 - len(values))


def payu_request_hash(
    key: str,
    txnid: str,
    amount: str,
    productinfo: str,
    firstname: str,
    email: str,
    salt: str,
    udfs: Sequence[str] = (),
) -> str:
    """sha512 of key|txnid|amount|productinfo|firstname|email|udf1..udf5|||||salt."""
    parts = [key, txnid, amount, productinfo, firstname, email] + _udfs(udfs) + [""] * 5 + [salt]
    return hashlib.sha512("|".join(parts).encode()).hexdigest()


def payu_response_hash(
    salt: str,
    status: str,
    email: str,
    firstname: str,
    productinfo: str,
    amount: str,
    txnid: str,
    key: str,
    udfs: Sequence[str] = (),
    additional_charges: Optional[str] = None,
) -> str:
    """Reverse hash PayU posts back: salt|status||||||udf5..udf1|email|firstname|productinfo|amount|txnid|key."""
    parts = [salt, status] + [""] * 5 + list(reversed(_udfs(udfs))) + [email, firstname, productinfo, amount, txnid, key]
    if additional_charges:
        parts.insert(0, additional_charges)
    return hashlib.sha512("|".join(parts).encode()).hexdigest()


def verify_payu_response(fields: dict, key: str, salt: str) -> bool:
    """Check the hash in a PayU return post against the merchant salt."""
    supplied = fields.get("hash")
    if not (supplied and key and salt):
        return False
    expected = payu_response_hash(
        salt=salt,
        status=fields.get("status", ""),
        email=fields.get("email", ""),
        firstname=fields.get("firstname", ""),
        productinfo=fields.get("productinfo", ""),
        amount=fields.get("amount", ""),
        txnid=fields.get("txnid", ""),
        key=key,
        udfs=[fields.get(f"udf{i}", "") for i in range(1, 6)],
        additional_charges=fields.get("additionalCharges"),
    )
    return _equal(expected, supplied)


def payu_command_hash(key: str, command: str, var1: str, salt: str) -> str:
    """Hash for PayU's postservice API: sha512 of key|command|var1|salt."""
    return hashlib.sha512(f"{key}|{command}|{var1}|{salt}".encode()).hexdigest()


# ---------------------------------------------
# PAYTM
# ---------------------------------------------

def paytm_signature(body: str, merchant_key: str) -> str:
    """Checksum for the 'head.signature' of Paytm's JSON APIs."""
    return PaytmChecksum.generateSignature(body, merchant_key)


def verify_paytm_signature(body: Union[str, dict], merchant_key: str, signature: str) -> bool:
    """Check a Paytm checksum over a JSON body or over posted callback fields."""
    if not (body and merchant_key and signature):
        return False
    if isinstance(body, dict):
        body = {k: v for k, v in body.items() if k != "CHECKSUMHASH"}
    return bool(PaytmChecksum.verifySignature(body, merchant_key, signature))
