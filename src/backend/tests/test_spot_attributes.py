# tests/test_spot_attributes.py
from app.constants import spot_attributes

class TestLookups:
    def test_known_key(self):
        assert spot_attributes.get_label('goodFor', 'vaults') == 'Vaults'
        assert spot_attributes.get_icon('goodFor', 'vaults') == 'directions_run'
        assert spot_attributes.get_description('goodFor', 'vaults') == 'Jumping over obstacles'

    def test_unknown_key_falls_back(self):
        assert spot_attributes.get_label('features', 'legacy_key') == 'legacy_key'
        assert spot_attributes.get_icon('features', 'legacy_key') == spot_attributes.FALLBACK_ICON
        assert spot_attributes.get_description('features', 'legacy_key') == ''

    def test_unknown_category(self):
        assert spot_attributes.get_keys('nope') == []
        assert spot_attributes.get_label('nope', 'x') == 'x'
        assert spot_attributes.get_icon('nope', 'x') == 'info'
        assert not spot_attributes.is_known('nope', 'x')

class TestKeys:
    def test_categories(self):
        assert set(spot_attributes.CATEGORIES) == {'access', 'features', 'facilities', 'goodFor'}

    def test_keys_are_stable(self):
        for category in spot_attributes.CATEGORIES:
            assert spot_attributes.get_keys(category) == spot_attributes.get_keys(category)

    def test_keys_have_no_duplicates(self):
        for category in spot_attributes.CATEGORIES:
            keys = spot_attributes.get_keys(category)
            assert len(keys) == len(set(keys))

    def test_access_matches_enum(self):
        assert spot_attributes.get_keys('access') == [a.value for a in spot_attributes.SpotAccess]

    def test_every_entry_has_label_and_icon(self):
        for category in spot_attributes.CATEGORIES:
            for key, entry in spot_attributes.get_entries(category).items():
                assert entry['label'], key
                assert entry['icon'], key

    def test_entries_are_copies(self):
        entries = spot_attributes.get_entries('goodFor')
        entries['vaults']['label'] = 'changed'
        assert spot_attributes.get_label('goodFor', 'vaults') == 'Vaults'
