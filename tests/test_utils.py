from notevault.utils import hash_password, make_id, verify_password


def test_make_id_has_prefix_and_is_unique():
    a, b = make_id("note"), make_id("note")
    assert a.startswith("note_")
    assert a != b


def test_password_hash_round_trip():
    stored = hash_password("secret1", iterations=1000)
    assert stored.startswith("pbkdf2_sha256$1000$")
    assert "secret1" not in stored
    assert verify_password("secret1", stored)
    assert not verify_password("secret2", stored)


def test_hashes_are_salted():
    assert hash_password("secret1", 1000) != hash_password("secret1", 1000)


def test_malformed_hash_never_matches():
    for stored in ["", "plain", "md5$1$abc$def", "pbkdf2_sha256$zero$abc$def", "pbkdf2_sha256$0$abc$def", None]:
        assert not verify_password("secret1", stored)
