"""Tests for upload tier classification."""

from bunnysync.sync import SuffixRule, Tier, TierClassifier, UploadLastRule


class TestUploadLastRule:
    """Test upload-last pattern matching."""

    def test_matches_file_name(self):
        rule = UploadLastRule(("hash.txt",))
        assert rule.matches("zone/hash.txt")
        assert rule.matches("zone/deep/dir/hash.txt")

    def test_case_insensitive(self):
        rule = UploadLastRule(("Manifest.JSON",))
        assert rule.matches("zone/manifest.json")

    def test_matches_path_suffix(self):
        rule = UploadLastRule(("build/hash.txt",))
        assert rule.matches("zone/site/build/hash.txt")
        assert not rule.matches("zone/site/other/hash.txt")

    def test_no_partial_name_match(self):
        rule = UploadLastRule(("hash.txt",))
        assert not rule.matches("zone/myhash.txt")
        assert not rule.matches("zone/hash.txt.bak")


class TestSuffixRule:
    def test_html_like(self):
        rule = SuffixRule()
        assert rule.matches("zone/index.html")
        assert rule.matches("zone/old.HTM")
        assert rule.matches("zone/sitemap.xml")
        assert not rule.matches("zone/app.js")


class TestTierClassifier:
    """Test tier assignment."""

    def test_default_tiers(self):
        classifier = TierClassifier.for_patterns()
        assert classifier.classify("zone/app.js") == Tier.DEFAULT
        assert classifier.classify("zone/index.html") == Tier.HTML
        assert classifier.classify("zone/feed.xml") == Tier.HTML

    def test_upload_last_beats_html(self):
        classifier = TierClassifier.for_patterns(["index.html", "hash.txt"])
        assert classifier.classify("zone/index.html") == Tier.LAST
        assert classifier.classify("zone/about.html") == Tier.HTML
        assert classifier.classify("zone/hash.txt") == Tier.LAST

    def test_empty_patterns_ignored(self):
        classifier = TierClassifier.for_patterns(["", ""])
        assert len(classifier.rules) == 1

    def test_custom_rules(self):
        classifier = TierClassifier(rules=[SuffixRule((".json",), tier=Tier.LAST)])
        assert classifier.classify("zone/a.json") == Tier.LAST
        assert classifier.classify("zone/a.html") == Tier.DEFAULT

    def test_tier_order_and_labels(self):
        assert sorted([Tier.LAST, Tier.DEFAULT, Tier.HTML]) == [
            Tier.DEFAULT,
            Tier.HTML,
            Tier.LAST,
        ]
        assert Tier.DEFAULT.label == ""
        assert Tier.HTML.label == "HTML/XML"
        assert Tier.LAST.label == "LAST"
