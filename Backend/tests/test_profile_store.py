from portfolio_intel.services.profile_store import ProfileStore, normalize_email


def test_normalize_email():
    assert normalize_email("Jane.Doe@Mail.com") == "jane_doe_mail_com"
    assert normalize_email(" a@b.io ") == "a_b_io"
    assert ProfileStore.key("a@b.io") == "career_profiles:a_b_io"


async def test_missing_profile():
    assert await ProfileStore().get("nobody@mail.com") is None


async def test_merge_keeps_unrelated_fields():
    store = ProfileStore()
    await store.merge("jane@mail.com", {"fullName": "Jane", "githubAnalysis": {"old": True}})
    merged = await store.merge("JANE@mail.com", {"githubAnalysis": {"username": "octo"}})

    assert merged["fullName"] == "Jane"
    assert merged["email"] == "jane@mail.com"
    assert merged["githubAnalysis"] == {"username": "octo"}
    assert await store.get("jane@mail.com") == merged


async def test_emails_differing_only_in_punctuation_share_a_document():
    store = ProfileStore()
    await store.merge("jane.doe@mail.com", {"n": 1})
    assert (await store.get("jane_doe@mail_com"))["n"] == 1


async def test_corrupt_document_reads_as_missing():
    store = ProfileStore()
    store._memory[store.key("a@b.com")] = "{not json"
    assert await store.get("a@b.com") is None
