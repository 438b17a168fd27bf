"""
HM14 catalog: the fixed basket of tradable companies.

Reference prices are last-known closes used until the first price sync.
"""

from typing import List

from .models import Instrument

HM14_INSTRUMENTS: List[Instrument] = [
    Instrument(
        instrument_id=1, ticker="META", company_name="Meta Platforms", category="Consumer",
        elevator_pitch="Connecting billions of people through social apps and immersive computing.",
        founder_story="Started in a dorm room as a campus directory before going global.",
        fun_fact="The 'Like' button was almost called the 'Awesome' button.",
        reference_price=621.71,
    ),
    Instrument(
        instrument_id=2, ticker="MSFT", company_name="Microsoft", category="Enterprise",
        elevator_pitch="Cloud, productivity software and developer tools for every business.",
        founder_story="Bill Gates left school to write software for the first personal computers.",
        fun_fact="Its first product was a BASIC interpreter for the Altair 8800.",
        reference_price=496.82,
    ),
    Instrument(
        instrument_id=3, ticker="ABNB", company_name="Airbnb", category="Consumer",
        elevator_pitch="A marketplace for stays and experiences hosted by locals.",
        founder_story="Nathan Blecharczyk and co-founders rented air mattresses during a sold-out conference.",
        fun_fact="The founders once sold novelty cereal boxes to keep the company alive.",
        reference_price=116.06,
    ),
    Instrument(
        instrument_id=4, ticker="NET", company_name="Cloudflare", category="Enterprise",
        elevator_pitch="A global network that makes websites faster and more secure.",
        founder_story="Michelle Zatlyn and Matthew Prince sketched the idea as a business school project.",
        fun_fact="A wall of lava lamps in its lobby helps generate random numbers.",
        reference_price=199.61,
    ),
    Instrument(
        instrument_id=5, ticker="GRAB", company_name="Grab Holdings", category="Consumer",
        elevator_pitch="Southeast Asia's super-app for rides, food delivery and payments.",
        founder_story="Anthony Tan and Tan Hooi Ling set out to make taxis safer in Malaysia.",
        fun_fact="It began life as a taxi-booking app called MyTeksi.",
        reference_price=5.33,
    ),
    Instrument(
        instrument_id=6, ticker="MRNA", company_name="Moderna", category="Social Impact",
        elevator_pitch="Messenger RNA medicines that teach cells to fight disease.",
        founder_story="Derrick Rossi's stem-cell research sparked the platform.",
        fun_fact="The company name blends 'modified' and 'RNA'.",
        reference_price=24.86,
    ),
    Instrument(
        instrument_id=7, ticker="KVYO", company_name="Klaviyo", category="Enterprise",
        elevator_pitch="Customer data and marketing automation for online brands.",
        founder_story="Andrew Bialecki and Ed Hallen built it for e-commerce stores they knew.",
        fun_fact="The name comes from the Latin word for 'keys'.",
        reference_price=27.47,
    ),
    Instrument(
        instrument_id=8, ticker="AFRM", company_name="Affirm", category="Consumer",
        elevator_pitch="Transparent buy-now-pay-later loans with no hidden fees.",
        founder_story="Max Levchin wanted to rebuild consumer credit with honest pricing.",
        fun_fact="Affirm never charges late fees.",
        reference_price=66.67,
    ),
    Instrument(
        instrument_id=9, ticker="PTON", company_name="Peloton", category="Consumer",
        elevator_pitch="Connected fitness equipment with live and on-demand classes.",
        founder_story="John Foley missed boutique spin classes he no longer had time for.",
        fun_fact="Early bikes were sold from a kiosk in a shopping mall.",
        reference_price=7.19,
    ),
    Instrument(
        instrument_id=10, ticker="ASAN", company_name="Asana", category="Enterprise",
        elevator_pitch="Work management software that helps teams coordinate projects.",
        founder_story="Dustin Moskovitz built it after running internal tooling at a social network.",
        fun_fact="The name is a yoga term for a pose held with ease.",
        reference_price=12.10,
    ),
    Instrument(
        instrument_id=11, ticker="LYFT", company_name="Lyft", category="Consumer",
        elevator_pitch="Ridesharing and micromobility across North America.",
        founder_story="Logan Green and John Zimmer started with long-distance ride sharing.",
        fun_fact="Its cars once wore giant pink mustaches.",
        reference_price=21.63,
    ),
    Instrument(
        instrument_id=12, ticker="TDUP", company_name="ThredUp", category="Social Impact",
        elevator_pitch="An online resale marketplace that keeps clothes out of landfills.",
        founder_story="James Reinhart had a closet full of clothes he never wore.",
        fun_fact="Its warehouses process more than 100,000 unique items a day.",
        reference_price=7.47,
    ),
    Instrument(
        instrument_id=13, ticker="KIND", company_name="Nextdoor", category="Consumer",
        elevator_pitch="The neighborhood network for local news, help and recommendations.",
        founder_story="Nirav Tolia wanted to bring back the sense of a real neighborhood.",
        fun_fact="Members must verify they actually live in the neighborhood.",
        reference_price=2.06,
    ),
    Instrument(
        instrument_id=14, ticker="RENT", company_name="Rent the Runway", category="Consumer",
        elevator_pitch="Designer clothing rental and subscription closets.",
        founder_story="Jennifer Hyman and Jennifer Fleiss met a friend with a dress dilemma.",
        fun_fact="It runs one of the largest dry-cleaning operations in the United States.",
        reference_price=4.53,
    ),
]
