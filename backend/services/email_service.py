"""
Email Service — transactional mail through the Resend SDK.

Templates are Indonesian HTML; every interpolated value is HTML-escaped.
A failed delivery raises EmailDeliveryError; the cron caller counts it and
moves on to the next recipient.
"""
import html
import logging
from datetime import datetime
from typing import Optional

import resend

from exceptions import EmailDeliveryError
from services.async_executor import run_blocking

logger = logging.getLogger(__name__)


_DAYS_ID = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
_MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def format_date_id(value: datetime) -> str:
    """'Senin, 5 Januari 2026'"""
    return f"{_DAYS_ID[value.weekday()]}, {value.day} {_MONTHS_ID[value.month - 1]} {value.year}"


def format_time_id(value: datetime) -> str:
    """'08.00' (Indonesian locale uses a dot separator)."""
    return value.strftime("%H.%M")


# ── Templates ────────────────────────────────────────────────────────

_STYLE = """
      body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; }
      .container { max-width: 600px; margin: 0 auto; padding: 20px; }
      .header { background: %(accent)s; color: white; padding: 30px; text-align: center; border-radius: 8px 8px 0 0; }
      .content { background: #f9f9f9; padding: 30px; border-radius: 0 0 8px 8px; }
      .card { background: white; padding: 20px; border-radius: 8px; margin: 20px 0; }
      .button { display: inline-block; background: #2E3A4A; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; margin: 10px; }
      .footer { text-align: center; padding: 20px; color: #666; font-size: 14px; }
"""


def _page(*, accent: str, heading: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <style>{_STYLE % {"accent": accent}}</style>
  </head>
  <body>
    <div class="container">
      <div class="header"><h1>{heading}</h1></div>
      <div class="content">{body}</div>
      <div class="footer">{footer}</div>
    </div>
  </body>
</html>"""


def _details(rows: list[tuple[str, str]]) -> str:
    lines = "".join(
        f"<p><strong>{label}:</strong> {html.escape(value)}</p>" for label, value in rows
    )
    return f'<div class="card">{lines}</div>'


class EmailClient:
    """Sends the studio's templated emails from one sender address."""

    def __init__(self, api_key: str, from_email: str, app_url: str = "", studio_name: str = ""):
        self.api_key = api_key
        self.from_email = from_email
        self.app_url = app_url.rstrip("/")
        self.studio_name = studio_name

    def _send_sync(self, params: dict) -> dict:
        # The SDK reads its key from module state
        resend.api_key = self.api_key
        return resend.Emails.send(params)

    async def send(self, *, to: str, subject: str, html_body: str) -> dict:
        """Send one message through Resend. Returns Resend's response ({"id": ...})."""
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not configured")

        params = {"from": self.from_email, "to": [to], "subject": subject, "html": html_body}
        try:
            response = await run_blocking(self._send_sync, params)
        except Exception as e:
            logger.error(f"❌ Email send error to {to}: {e}")
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        logger.info(f"  📧 Email sent: '{subject}' → {to} (id={response.get('id')})")
        return response

    def _footer(self, *lines: str) -> str:
        parts = [*lines, self.studio_name]
        return "".join(f"<p>{html.escape(p)}</p>" for p in parts if p)

    async def send_booking_confirmation(
        self,
        *,
        to: str,
        user_name: str,
        class_name: str,
        date: str,
        time: str,
        coach: str,
        location: str,
    ) -> dict:
        body = (
            f"<p>Halo <strong>{html.escape(user_name)}</strong>,</p>"
            "<p>Booking kelas Anda telah berhasil dikonfirmasi! Kami menunggu Anda di studio.</p>"
            + _details([
                ("Kelas", class_name),
                ("Tanggal", date),
                ("Waktu", time),
                ("Instruktur", coach),
                ("Lokasi", location),
            ])
            + "<p><strong>Catatan Penting:</strong></p><ul>"
            "<li>Datang 10 menit sebelum kelas dimulai</li>"
            "<li>Bawa pakaian olahraga yang nyaman, handuk dan botol minum</li>"
            "<li>Jika perlu membatalkan, harap beritahu kami minimal 4 jam sebelumnya</li>"
            "</ul>"
            f'<center><a href="{self.app_url}/account?tab=manage-booking" class="button">Lihat Booking Saya</a></center>'
        )
        return await self.send(
            to=to,
            subject=f"✅ Booking Kelas Berhasil - {self.studio_name}",
            html_body=_page(accent="#2E3A4A", heading="✅ Booking Berhasil!", body=body, footer=self._footer()),
        )

    async def send_cancellation_confirmation(
        self,
        *,
        to: str,
        user_name: str,
        class_name: str,
        date: str,
        time: str,
    ) -> dict:
        body = (
            f"<p>Halo <strong>{html.escape(user_name)}</strong>,</p>"
            "<p>Booking kelas Anda telah berhasil dibatalkan.</p>"
            + _details([("Kelas", class_name), ("Tanggal", date), ("Waktu", time)])
            + "<p>Kredit paket Anda telah dikembalikan. Anda dapat menggunakan kredit ini untuk booking kelas lain.</p>"
            f'<center><a href="{self.app_url}/#schedule" class="button">Lihat Jadwal Kelas</a></center>'
        )
        return await self.send(
            to=to,
            subject=f"❌ Pembatalan Booking Dikonfirmasi - {self.studio_name}",
            html_body=_page(accent="#DC2626", heading="❌ Booking Dibatalkan", body=body, footer=self._footer()),
        )

    async def send_class_reminder(
        self,
        *,
        to: str,
        user_name: str,
        class_name: str,
        date: str,
        time: str,
        coach: str,
        location: Optional[str],
    ) -> dict:
        body = (
            f"<p>Halo <strong>{html.escape(user_name)}</strong>,</p>"
            "<p>Ini adalah pengingat untuk kelas Anda besok.</p>"
            + _details([
                ("Kelas", class_name),
                ("Tanggal", date),
                ("Waktu", time),
                ("Instruktur", coach),
                ("Lokasi", location or "-"),
            ])
            + '<p style="color: #DC2626;"><strong>⚠️ Perhatian:</strong> Jika Anda perlu membatalkan, '
            "mohon beritahu kami minimal 4 jam sebelumnya agar kredit paket Anda dapat dikembalikan.</p>"
        )
        return await self.send(
            to=to,
            subject=f"⏰ Pengingat: Kelas Besok - {self.studio_name}",
            html_body=_page(
                accent="#F59E0B",
                heading="⏰ Pengingat Kelas Besok!",
                body=body,
                footer=self._footer("Sampai jumpa besok!"),
            ),
        )

    async def send_welcome(self, *, to: str, user_name: str) -> dict:
        body = (
            f"<p>Halo <strong>{html.escape(user_name)}</strong>,</p>"
            f"<p>Terima kasih telah bergabung dengan {html.escape(self.studio_name)}! "
            "Kami sangat senang Anda menjadi bagian dari komunitas kami.</p>"
            '<div class="card"><h3 style="margin-top: 0;">Langkah Selanjutnya:</h3><ol>'
            "<li><strong>Lihat Jadwal Kelas</strong> - Pilih kelas yang sesuai dengan jadwal Anda</li>"
            "<li><strong>Beli Paket</strong> - Dapatkan harga lebih hemat dengan paket kelas</li>"
            "<li><strong>Booking Kelas Pertama</strong> - Mulai perjalanan Anda!</li>"
            "</ol></div>"
            f'<center><a href="{self.app_url}/#schedule" class="button">Lihat Jadwal</a>'
            f'<a href="{self.app_url}/#packages" class="button">Lihat Paket</a></center>'
        )
        return await self.send(
            to=to,
            subject=f"🎉 Selamat Datang di {self.studio_name}!",
            html_body=_page(
                accent="#2E3A4A",
                heading=f"🎉 Selamat Datang di {html.escape(self.studio_name)}!",
                body=body,
                footer=self._footer("Sampai jumpa di studio!"),
            ),
        )
