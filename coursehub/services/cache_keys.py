# services/cache_keys.py

# Auth/session
def user_session_key(user_id: str) -> str:
    return f"user_session:{user_id}"

def blacklisted_jti_key(jti: str) -> str:
    return f"blacklisted_tokens:{jti}"

def refresh_tokens_key(user_id: str) -> str:
    return f"refresh_tokens:{user_id}"

# One-shot data handed from a redirecting POST to the next page payload
def flash_key(user_id: str) -> str:
    return f"flash:{user_id}"
