# Message templates for common paragliding booking scenarios


def booking_received_message(booking) -> str:
    lines = [
        "🪂 *Booking Received!*",
        "",
        f"Hello {booking.customer_name}!",
        "",
        f"We have your request for *{booking.tour_name}*.",
        "",
        f"📅 *Date:* {booking.booking_date.isoformat()}",
        f"🕐 *Time:* {booking.tour_start_time}",
        f"👥 *Guests:* {booking.adults} adults" + (f", {booking.children} children" if booking.children else ""),
    ]
    if booking.hotel_name:
        lines.append(f"🏨 *Pickup:* {booking.hotel_name}")
    lines += [
        "",
        "We'll confirm your flight shortly.",
        f"Booking ID: {booking.id}",
    ]
    return "\n".join(lines)


def booking_status_message(booking) -> str:
    status = getattr(booking.status, "value", booking.status)
    if status == "confirmed":
        head = "✅ *Booking Confirmed!*"
        tail = "Please arrive 15 minutes early and wear comfortable shoes."
    elif status == "cancelled":
        head = "❌ *Booking Cancelled*"
        tail = "Reply to this message if you'd like to pick another date."
    else:
        head = f"ℹ️ *Booking {str(status).title()}*"
        tail = ""
    lines = [
        head,
        "",
        f"{booking.tour_name} on {booking.booking_date.isoformat()} at {booking.tour_start_time}",
        f"Booking ID: {booking.id}",
    ]
    if tail:
        lines += ["", tail]
    return "\n".join(lines)
