from models.resolver import resolve_affected_components, route_in_region
from models.scenario import DisruptionRegion, SimulationScenario


def _scenario(**kwargs):
    return SimulationScenario(severity=50, duration=30, timeframe=90, **kwargs)


def test_taiwan_region_hits_only_tsmc(network, taiwan_scenario):
    affected = resolve_affected_components(taiwan_scenario, network.suppliers, network.routes)
    assert affected.supplier_ids == ("1",)
    assert affected.route_ids == ("1",)
    assert affected.countries == ("Taiwan",)


def test_regions_carry_impact_zones(network, taiwan_scenario):
    affected = resolve_affected_components(taiwan_scenario, network.suppliers, network.routes)
    (region,) = affected.regions
    assert region.impact_zone.supplier_ids == ("1",)
    assert region.impact_zone.severity == taiwan_scenario.severity
    assert region.impact_zone.recovery_days > 0
    assert taiwan_scenario.regions[0].impact_zone is None


def test_empty_scenario_affects_nothing(small_network):
    affected = resolve_affected_components(_scenario(), small_network.suppliers, small_network.routes)
    assert affected.is_empty
    assert affected.countries == ()
    assert affected.regions == ()


def test_explicit_ids_come_first_without_duplicates(small_network):
    scenario = _scenario(
        supplier_ids=("c", "a"),
        regions=(DisruptionRegion(lat=0, lng=0, radius_km=200),),
    )
    affected = resolve_affected_components(scenario, small_network.suppliers, small_network.routes)
    assert affected.supplier_ids == ("c", "a", "b")


def test_explicit_ids_do_not_add_countries(small_network):
    affected = resolve_affected_components(
        _scenario(supplier_ids=("c",)), small_network.suppliers, small_network.routes
    )
    assert affected.supplier_ids == ("c",)
    assert affected.countries == ()
    assert affected.route_ids == ()


def test_route_included_when_only_destination_inside(small_network):
    london = DisruptionRegion(lat=51.5074, lng=-0.1278, radius_km=20)
    affected = resolve_affected_components(
        _scenario(regions=(london,)), small_network.suppliers, small_network.routes
    )
    assert affected.supplier_ids == ()
    assert affected.route_ids == ("r1", "r2")


def test_route_included_when_only_origin_inside(small_network):
    gabon = DisruptionRegion(lat=0, lng=10, radius_km=5)
    affected = resolve_affected_components(
        _scenario(regions=(gabon,)), small_network.suppliers, small_network.routes
    )
    assert affected.supplier_ids == ("c",)
    assert affected.route_ids == ("r2",)
    assert affected.countries == ("Gabon",)


def test_route_in_region_either_endpoint(small_network):
    r1 = small_network.route("r1")
    assert route_in_region(r1, DisruptionRegion(lat=0, lng=0, radius_km=1))
    assert route_in_region(r1, DisruptionRegion(lat=51.5074, lng=-0.1278, radius_km=1))
    assert not route_in_region(r1, DisruptionRegion(lat=-30, lng=-60, radius_km=100))


def test_zero_radius_region_affects_nothing(small_network):
    """Supplier "a" and route "r1" sit exactly on the center and are still excluded."""
    exact = DisruptionRegion(lat=0, lng=0, radius_km=0)
    affected = resolve_affected_components(
        _scenario(regions=(exact,)), small_network.suppliers, small_network.routes
    )
    assert affected.is_empty
    assert affected.countries == ()
    assert affected.regions[0].impact_zone.supplier_ids == ()


def test_resolution_is_deterministic(network, taiwan_scenario):
    first = resolve_affected_components(taiwan_scenario, network.suppliers, network.routes)
    second = resolve_affected_components(taiwan_scenario, network.suppliers, network.routes)
    assert first == second
