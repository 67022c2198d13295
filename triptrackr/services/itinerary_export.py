"""Calendar export for itineraries"""
from datetime import timedelta
from icalendar import Calendar, Event
from ..models.itinerary import Itinerary


def itinerary_to_ics(itinerary: Itinerary) -> bytes:
    """
    Render an itinerary as an iCalendar file

    One all-day event spans the whole trip; each destination with an arrival
    date gets its own all-day event (DTEND is exclusive, so a stay ending on
    the departure date ends the day after).
    """
    cal = Calendar()
    cal.add("prodid", "-//TripTrackr//Itinerary Export//EN")
    cal.add("version", "2.0")
    cal.add("x-wr-calname", itinerary.title)

    trip = Event()
    trip.add("uid", f"itinerary-{itinerary.id}@triptrackr")
    trip.add("summary", itinerary.title)
    trip.add("dtstart", itinerary.start_date)
    trip.add("dtend", itinerary.end_date + timedelta(days=1))
    trip.add("dtstamp", itinerary.updated_at)
    trip.add("description", itinerary.notes or ", ".join(d.name for d in itinerary.destinations))
    trip.add("status", "CANCELLED" if itinerary.status == "cancelled" else "CONFIRMED")
    cal.add_component(trip)

    for index, destination in enumerate(itinerary.destinations):
        if not destination.arrival_date:
            continue
        last_day = destination.departure_date or destination.arrival_date

        stop = Event()
        stop.add("uid", f"itinerary-{itinerary.id}-destination-{index}@triptrackr")
        stop.add("summary", f"{itinerary.title}: {destination.name}")
        stop.add("dtstart", destination.arrival_date)
        stop.add("dtend", max(last_day, destination.arrival_date) + timedelta(days=1))
        stop.add("dtstamp", itinerary.updated_at)
        stop.add("location", destination.accommodation or destination.name)
        if destination.coordinates:
            stop.add("geo", (destination.coordinates.lat, destination.coordinates.lng))

        details = []
        if destination.activities:
            details.append("Activities: " + ", ".join(destination.activities))
        if destination.notes:
            details.append(destination.notes)
        if details:
            stop.add("description", "\n".join(details))
        cal.add_component(stop)

    return cal.to_ical()
