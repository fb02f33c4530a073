"""webhook / 队列 API 鉴权单元测试"""

from pydantic import SecretStr
from replyqueue.gateway.config import GatewayConfig
from replyqueue.gateway.security import check_queue_key, compute_signature, verify_webhook

BODY = b'{"payload": {}}'


class TestVerifyWebhook:
    def test_open_when_unconfigured(self):
        assert verify_webhook(GatewayConfig(), BODY, {}) is True

    def test_shared_secret_header_or_query(self):
        config = GatewayConfig(webhook_secret=SecretStr("s3cret"))
        assert verify_webhook(config, BODY, {"x-webhook-secret": "s3cret"})
        assert verify_webhook(config, BODY, {}, query_secret="s3cret")
        assert not verify_webhook(config, BODY, {"x-webhook-secret": "S3CRET"})
        assert not verify_webhook(config, BODY, {})

    def test_hmac_signature(self):
        config = GatewayConfig(webhook_hmac_key=SecretStr("k"))
        sig = compute_signature("k", BODY)
        assert verify_webhook(config, BODY, {"x-signature": sig})
        assert verify_webhook(config, BODY, {"x-signature": f"sha256={sig.upper()}"})
        assert not verify_webhook(config, BODY + b"x", {"x-signature": sig})
        assert not verify_webhook(config, BODY, {"x-signature": ""})

    def test_either_method_accepted(self):
        config = GatewayConfig(
            webhook_secret=SecretStr("s3cret"),
            webhook_hmac_key=SecretStr("k"),
        )
        assert verify_webhook(config, BODY, {"x-webhook-secret": "s3cret"})
        assert verify_webhook(config, BODY, {"x-signature": compute_signature("k", BODY)})
        assert not verify_webhook(config, BODY, {"x-webhook-secret": "k"})


class TestQueueKey:
    def test_open_when_unset(self):
        assert check_queue_key(GatewayConfig(), None)

    def test_key_compare(self):
        config = GatewayConfig(queue_key=SecretStr("qk"))
        assert check_queue_key(config, "qk")
        assert not check_queue_key(config, "QK")
        assert not check_queue_key(config, "")
        assert not check_queue_key(config, None)

    def test_signature_is_hex_sha256(self):
        assert len(compute_signature("k", BODY)) == 64
