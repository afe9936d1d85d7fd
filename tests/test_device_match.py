from __future__ import annotations

from volroute.core.device_match import evaluate_device, format_mac, macs_match, name_matches_hint, normalize_mac


def test_hint_matches_case_insensitive_substring():
    assert name_matches_hint("LG webOS TV (NVIDIA High Definition Audio)", "lg") is True
    assert name_matches_hint("Speakers (Realtek Audio)", "LG") is False


def test_empty_hint_never_matches():
    assert name_matches_hint("LG webOS TV", "  ") is False


def test_mac_normalization():
    assert normalize_mac("aa:bb-cc.dd ee:ff") == "AABBCCDDEEFF"
    assert format_mac("aabbccddeeff") == "AA:BB:CC:DD:EE:FF"


def test_macs_match_ignores_separators_and_case():
    assert macs_match("AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff") is True
    assert macs_match("AA:BB:CC:DD:EE:FF", "AA:BB:CC:DD:EE:00") is False
    assert macs_match("", "") is False


def test_spatial_probe_only_runs_for_target():
    probed = []

    def probe() -> bool:
        probed.append(True)
        return True

    other = evaluate_device("Speakers (Realtek Audio)", "LG", probe)
    assert other.device_is_target is False
    assert other.spatial_audio_active is False
    assert probed == []

    tv = evaluate_device("LG webOS TV", "LG", probe)
    assert tv.device_is_target is True
    assert tv.spatial_audio_active is True
    assert tv.device_name == "LG webOS TV"
    assert probed == [True]


def test_unknown_device_is_fail_safe():
    signal = evaluate_device(None, "LG", lambda: True)
    assert signal.device_is_target is False
    assert signal.spatial_audio_active is False
