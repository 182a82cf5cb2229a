# tests/test_spot_form.py
import asyncio
import pytest
from app.core.errors import SpotValidationError
from app.schemas.geocoding import GeocodeResult
from app.schemas.spot import SpotWriteRequest
from app.services.spot_form import LatestRequestGuard, SpotForm, parse_tags
from conftest import make_spot

def valid_form(**kwargs) -> SpotForm:
    values = {
        'name': 'Parc de Bercy',
        'description': 'Lots of low walls and rails.',
        'picked_location': (48.8338, 2.3849),
        'new_images': [b'\xff\xd8\xff image'],
    }
    values.update(kwargs)
    return SpotForm(**values)

def validation_errors(form: SpotForm, user, **kwargs) -> dict:
    with pytest.raises(SpotValidationError) as exc_info:
        form.validate(user, **kwargs)
    return exc_info.value.errors

class TestParseTags:
    def test_comma_separated(self):
        assert parse_tags(' walls, rails ,,walls ') == ['walls', 'rails']

    def test_list_and_none(self):
        assert parse_tags(['a', ' b ', '']) == ['a', 'b']
        assert parse_tags(None) == []

class TestValidation:
    def test_valid_form(self, user):
        valid_form().validate(user)

    def test_name_required(self, user):
        assert 'name' in validation_errors(valid_form(name='   '), user)

    def test_description_length(self, user):
        assert 'description' in validation_errors(valid_form(description='123456789'), user)
        valid_form(description='1234567890').validate(user)

    def test_description_length_ignores_surrounding_whitespace(self, user):
        assert 'description' in validation_errors(valid_form(description='  123456789   '), user)

    def test_moderator_may_skip_description_on_edit_only(self, moderator):
        valid_form(description='').validate(moderator, is_edit=True)
        assert 'description' in validation_errors(valid_form(description=''), moderator, is_edit=False)

    def test_images_required_for_users(self, user):
        assert 'images' in validation_errors(valid_form(new_images=[]), user)

    def test_images_optional_for_moderators(self, moderator):
        valid_form(new_images=[]).validate(moderator)
        valid_form(new_images=[]).validate(moderator, is_edit=True)

    def test_deleted_images_do_not_count(self, user):
        form = valid_form(new_images=[], existing_image_urls=['https://cdn.example.com/a.jpg'])
        form.remove_existing_image('https://cdn.example.com/a.jpg')
        assert form.image_count == 0
        assert 'images' in validation_errors(form, user)

    def test_location_required(self, user):
        assert 'location' in validation_errors(valid_form(picked_location=None), user)

    def test_device_location_is_used_when_nothing_picked(self, user):
        form = valid_form(picked_location=None, device_location=(1.0, 2.0))
        form.validate(user)
        assert form.location == (1.0, 2.0)

    def test_picked_location_wins(self):
        form = valid_form(picked_location=(3.0, 4.0), device_location=(1.0, 2.0))
        assert form.location == (3.0, 4.0)

    def test_location_out_of_range(self, user):
        assert 'location' in validation_errors(valid_form(picked_location=(91.0, 0.0)), user)

    def test_unknown_attribute_keys(self, user):
        form = valid_form(spot_access='secret', spot_features=['lava'], good_for=['flying'])
        errors = validation_errors(form, user)
        assert {'spot_access', 'spot_features', 'good_for'} <= set(errors)

    def test_all_errors_are_reported_together(self, user):
        errors = validation_errors(SpotForm(), user)
        assert {'name', 'description', 'images', 'location'} <= set(errors)

class TestFacilities:
    def test_yes_no_then_clear_removes_key(self):
        form = valid_form()
        form.set_facility('toilet', 'yes')
        assert form.spot_facilities == {'toilet': 'yes'}
        form.set_facility('toilet', 'no')
        assert form.spot_facilities == {'toilet': 'no'}
        form.set_facility('toilet', None)
        assert form.spot_facilities == {}
        assert form.to_values([])['spot_facilities'] == {}

    def test_unknown_facility(self):
        with pytest.raises(ValueError):
            SpotForm().set_facility('sauna', 'yes')

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            SpotForm().set_facility('toilet', 'maybe')

    def test_null_values_from_request_are_dropped(self):
        request = SpotWriteRequest(spot_facilities={'toilet': 'yes', 'parking': None})
        form = SpotForm.from_request(request)
        assert form.spot_facilities == {'toilet': 'yes'}

class TestToggles:
    def test_toggle_feature(self):
        form = SpotForm()
        form.toggle_feature('rocks')
        form.toggle_good_for('vaults')
        assert form.spot_features == ['rocks']
        assert form.good_for == ['vaults']
        form.toggle_feature('rocks')
        assert form.spot_features == []

class TestFromRequest:
    def test_locations(self):
        request = SpotWriteRequest(
            name='A', description='B', tags='x, y',
            device_latitude=1.0, device_longitude=2.0,
            picked_latitude=3.0, picked_longitude=None,
        )
        form = SpotForm.from_request(request)
        assert form.device_location == (1.0, 2.0)
        assert form.picked_location is None
        assert form.tags == ['x', 'y']

    def test_from_spot_keeps_address(self):
        spot = make_spot('s', 'Name', 10.0, 20.0, description='desc', address='Main St', city='Town', country_code='NL')
        form = SpotForm.from_spot(spot)
        assert form.location == (10.0, 20.0)
        assert form.geocode == GeocodeResult(address='Main St', city='Town', country_code='NL')

class TestToValues:
    def test_values(self, paris_geocode):
        form = valid_form(tags=['walls'], geocode=paris_geocode)
        values = form.to_values(['https://cdn.example.com/a.jpg'])
        assert values['latitude'] == 48.8338
        assert values['image_urls'] == ['https://cdn.example.com/a.jpg']
        assert values['city'] == 'Paris'

    def test_without_geocode_address_is_untouched(self):
        values = valid_form().to_values([])
        assert 'address' not in values

    def test_clear(self, paris_geocode):
        form = valid_form(geocode=paris_geocode, images_to_delete=['x'])
        form.clear()
        assert form.new_images == []
        assert form.images_to_delete == []
        assert form.picked_location is None
        assert form.geocode is None

class SlowGeocoder:
    """
    最初の呼び出しだけ遅れて応答するジオコーダー．
    """
    def __init__(self):
        self.first_started = asyncio.Event()
        self.release_first = asyncio.Event()
        self.calls = 0

    async def reverse_geocode_silently(self, lat, lng):
        self.calls += 1
        if self.calls == 1:
            self.first_started.set()
            await self.release_first.wait()
        return GeocodeResult(address=f"{lat},{lng}", city='City', country_code='NL')

class TestPickLocation:
    def test_result_is_applied(self, geocoder, paris_geocode):
        geocoder.results[(48.8566, 2.3522)] = paris_geocode
        form = SpotForm()
        result = asyncio.run(form.pick_location(48.8566, 2.3522, geocoder))
        assert result == paris_geocode
        assert form.geocode == paris_geocode
        assert form.picked_location == (48.8566, 2.3522)

    def test_failure_leaves_address_empty(self, geocoder):
        form = SpotForm()
        assert asyncio.run(form.pick_location(1.0, 1.0, geocoder)) is None
        assert form.geocode is None
        assert form.location == (1.0, 1.0)

    def test_stale_response_is_discarded(self):
        async def scenario():
            geocoder = SlowGeocoder()
            form = SpotForm()
            first = asyncio.create_task(form.pick_location(1.0, 1.0, geocoder))
            await geocoder.first_started.wait()
            await form.pick_location(2.0, 2.0, geocoder)
            geocoder.release_first.set()
            stale = await first
            return form, stale

        form, stale = asyncio.run(scenario())
        assert stale is None
        assert form.picked_location == (2.0, 2.0)
        assert form.geocode.address == '2.0,2.0'

class TestLatestRequestGuard:
    def test_only_last_token_is_latest(self):
        guard = LatestRequestGuard()
        first = guard.issue()
        second = guard.issue()
        assert not guard.is_latest(first)
        assert guard.is_latest(second)
