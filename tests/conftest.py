import os
import tempfile

# settings.Settings() runs at import time and needs a token
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("BOT_USERNAME", "earning_test_bot")
os.environ.setdefault("ERROR_LOG_FILE", os.path.join(tempfile.mkdtemp(), "error.log"))
os.environ.setdefault("USERS_FILE", os.path.join(tempfile.mkdtemp(), "users.json"))
