from fullpage_capture.keys import OutputKeyResolver, host_key, resolve_page_key


def test_page_key_from_last_segment():
    assert resolve_page_key("https://membershealth.ca/Discovery") == "discovery"
    assert resolve_page_key("https://membershealth.ca/programs/surp") == "surp"
    assert resolve_page_key("https://membershealth.ca/programs/SURP_2024.html/") == "surp-2024-html"


def test_page_key_fallbacks():
    assert resolve_page_key("https://membershealth.ca/") == "home"
    assert resolve_page_key("https://membershealth.ca/--/") == "page"


def test_host_key_drops_www():
    assert host_key("https://www.Members-Health.ca/x") == "members-health-ca"


def test_resolver_keys_are_unique_and_first_is_base():
    resolver = OutputKeyResolver(timestamp="20251006-142305")
    urls = [
        "https://a.example.com/about",
        "https://b.example.com/about",
        "https://b.example.com/team/about",
        "https://b.example.com/company/about",
        "https://b.example.com/old/about",
    ]
    keys = [resolver.resolve(u) for u in urls]
    assert keys == [
        "about",
        "b-example-com-about",
        "b-example-com-about-20251006-142305",
        "b-example-com-about-20251006-142305-2",
        "b-example-com-about-20251006-142305-3",
    ]
    assert len(set(keys)) == len(keys)


def test_resolver_never_repeats_a_key():
    resolver = OutputKeyResolver(timestamp="t")
    keys = [resolver.resolve("https://example.com/") for _ in range(6)]
    assert keys[0] == "home"
    assert len(set(keys)) == 6
