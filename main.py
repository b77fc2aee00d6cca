"""
Streamlit-app för ruttsökningen

Appen löser upp startadressen, kör sökningen och visar resultatet.
"""

import logging
import streamlit as st
from datetime import datetime

from config import DEFAULT_DISTANCE, DEFAULT_PACE, LOG_LEVEL, TARGET_KM_MIN, TARGET_KM_MAX
from geocoding import GeocodeCache, MapboxGeocoder, NominatimGeocoder
from models import Accepted, Failed, FallbackAccepted, Profile, RouteType, SearchParameters
from routing import ConfigurationError, find_route
from utils import create_gpx, describe_direction, format_time, parse_pace

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@st.cache_resource
def get_geocode_cache() -> GeocodeCache:
    """En cache för hela processen, delad mellan sessioner"""
    if "MAPBOX_TOKEN" in st.secrets:
        return GeocodeCache(MapboxGeocoder(st.secrets["MAPBOX_TOKEN"]))
    return GeocodeCache(NominatimGeocoder())


def init_session_state():
    """Initiera session state"""
    defaults = {
        "start": None,
        "outcome": None,
        "route_seed": 0,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def show_outcome(outcome, pace: str):
    """Visa resultatet av en sökning"""
    if isinstance(outcome, Failed):
        if outcome.retry_later:
            st.warning(outcome.message)
        else:
            st.error(outcome.message)
        return

    route = outcome.candidate
    if isinstance(outcome, FallbackAccepted):
        st.info("Ingen rutt inom tolerans, visar den bästa som hittades")

    st.metric("Distans", f"{route.distance_km:.2f} km")
    st.metric("Uppskattad tid", format_time(route.distance_km * parse_pace(pace)))
    st.caption(f"{outcome.attempts} försök via {route.provider}")

    start = st.session_state.start
    direction = describe_direction(start.coordinate, route)
    if direction:
        st.write(f"Rutten går mot {direction}")

    gpx_name = st.text_input(
        "Ruttnamn",
        value=f"Löprunda {datetime.now().strftime('%Y-%m-%d')}",
        key="gpx_name"
    )
    st.download_button(
        label="Ladda ner GPX",
        data=create_gpx(route, gpx_name),
        file_name=f"{gpx_name.replace(' ', '_')}.gpx",
        mime="application/gpx+xml",
        use_container_width=True
    )


def main():
    """Huvudfunktion för Streamlit-appen"""
    st.set_page_config(page_title="Löparruttplanerare", page_icon="🏃")
    init_session_state()

    st.title("Löparruttplanerare")

    with st.sidebar:
        st.header("Inställningar")

        route_type = st.radio(
            "Ruttläge",
            list(RouteType),
            format_func=lambda x: "Loop (start = mål)" if x is RouteType.LOOP else "Point-to-point"
        )
        profile = st.radio(
            "Underlag",
            list(Profile),
            format_func=lambda x: "Gata/väg" if x is Profile.FOOT else "Stig/terräng"
        )
        distance = st.number_input(
            "Distans (km)",
            min_value=TARGET_KM_MIN,
            max_value=TARGET_KM_MAX,
            value=DEFAULT_DISTANCE,
            step=0.5
        )
        pace = st.text_input("Tempo (min/km)", value=DEFAULT_PACE)

        address = st.text_input("Startadress", placeholder="T.ex. Kungsgatan 1, Stockholm")
        if address:
            start = get_geocode_cache().get(address)
            if start:
                st.session_state.start = start
                st.caption(start.display_name)
            else:
                st.error("Kunde inte hitta adressen")

        col_gen1, col_gen2 = st.columns(2)
        with col_gen1:
            generate_button = st.button("Generera rutt", type="primary", use_container_width=True)
        with col_gen2:
            regenerate_button = st.button("Ny variant", use_container_width=True,
                                          disabled=st.session_state.start is None)

    if generate_button or regenerate_button:
        if st.session_state.start is None:
            st.error("Välj en startpunkt först!")
        else:
            if regenerate_button:
                st.session_state.route_seed += 10

            params = SearchParameters(target_km=distance, profile=profile, route_type=route_type)
            with st.spinner("Beräknar rutt..."):
                try:
                    st.session_state.outcome = find_route(
                        st.session_state.start.coordinate,
                        params,
                        st.secrets,
                        seed=st.session_state.route_seed
                    )
                except ConfigurationError as e:
                    st.error(str(e))

    outcome = st.session_state.outcome
    if isinstance(outcome, (Accepted, FallbackAccepted, Failed)):
        show_outcome(outcome, pace)
    else:
        st.info("Generera en rutt för att se sammanfattning")


if __name__ == "__main__":
    main()
