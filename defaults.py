"""
Seed data used to initialise an empty database and as fallback data when
the database can't be read.
"""

from typing import Any, Dict, List

INITIAL_PARTNERS: List[Dict[str, Any]] = [
    {
        "id": "p1",
        "name": "Budi Santoso",
        "phone": "08123456789",
        "split_percentage": 70,
        "image": "https://i.pravatar.cc/150?u=p1",
    },
]

INITIAL_CARS: List[Dict[str, Any]] = [
    {
        "id": "c1",
        "name": "Toyota Avanza",
        "plate": "B 1234 ABC",
        "type": "MPV",
        "pricing": {
            "12 Jam (Dalam Kota)": 300000,
            "24 Jam (Dalam Kota)": 450000,
            "Full Day (Luar Kota)": 550000,
        },
        "status": "Available",
        "image": "https://picsum.photos/300/200?random=1",
    },
    {
        "id": "c2",
        "name": "Honda Brio",
        "plate": "B 5678 DEF",
        "type": "City Car",
        "pricing": {
            "12 Jam (Dalam Kota)": 250000,
            "24 Jam (Dalam Kota)": 350000,
            "Full Day (Luar Kota)": 450000,
        },
        "status": "Available",
        "image": "https://picsum.photos/300/200?random=2",
    },
]

INITIAL_DRIVERS: List[Dict[str, Any]] = [
    {
        "id": "d1",
        "name": "Pak Asep",
        "phone": "08122334455",
        "daily_rate": 150000,
        "status": "Active",
        "image": "https://i.pravatar.cc/150?u=d1",
    },
]

INITIAL_CUSTOMERS: List[Dict[str, Any]] = [
    {"id": "cust1", "name": "John Doe", "phone": "08111222333", "address": "Jl. Sudirman No. 1, Jakarta"},
]

INITIAL_HIGH_SEASONS: List[Dict[str, Any]] = [
    {"id": "hs1", "name": "Libur Lebaran", "start_date": "2024-04-05", "end_date": "2024-04-15", "price_increase": 100000},
]

WHATSAPP_TEMPLATE = """*NOTA*
*BERSAMA RENT CAR*
No. Inv.: {invoiceNo}
--------------------------------
Halo {name}
Berikut rincian sewa Anda:

🚗 Unit: {unit}
📅 Tgl: {startDate} s/d {endDate}
--------------------------------
💰 Total Biaya : {total}
✅ Sudah Bayar : {paid}
--------------------------------
⚠️ SISA TAGIHAN: {remaining}
⚠️ STATUS: {status}
--------------------------------
Silakan melunasi pembayaran ke:
💳 BCA: 1234567890 (a.n Rental BRC)

Terima kasih telah menyewa di Bersama Rent Car."""

DEFAULT_SETTINGS: Dict[str, Any] = {
    "company_name": "Bersama Rent Car",
    "tagline": "Solusi Perjalanan Anda",
    "address": "Jl. Raya Utama No. 88, Jakarta",
    "phone": "0812-3456-7890",
    "email": "admin@bersamarentcar.com",
    "website": "www.bersamarentcar.com",
    "invoice_footer": "Terima kasih telah menyewa di Bersama Rent Car.",
    "logo_url": None,
    "theme_color": "red",
    "dark_mode": False,
    "payment_terms": (
        "1. Pembayaran DP minimal 30% dimuka.\n"
        "2. Pelunasan wajib dilakukan saat serah terima unit.\n"
        "3. Pembayaran via Transfer Bank BCA: 1234567890 a/n BRC."
    ),
    "terms_and_conditions": (
        "1. Penyewa wajib memiliki SIM A yang berlaku.\n"
        "2. Dilarang merokok di dalam kendaraan.\n"
        "3. Segala bentuk pelanggaran lalu lintas menjadi tanggung jawab penyewa.\n"
        "4. Keterlambatan pengembalian dikenakan denda sesuai ketentuan."
    ),
    "whatsapp_template": WHATSAPP_TEMPLATE,
    "car_categories": ["MPV", "SUV", "City Car", "Sedan", "Luxury", "Minibus"],
    "rental_packages": ["12 Jam (Dalam Kota)", "24 Jam (Dalam Kota)", "Full Day (Luar Kota)"],
}

FALLBACKS: Dict[str, List[Dict[str, Any]]] = {
    "cars": INITIAL_CARS,
    "drivers": INITIAL_DRIVERS,
    "partners": INITIAL_PARTNERS,
    "customers": INITIAL_CUSTOMERS,
    "high_seasons": INITIAL_HIGH_SEASONS,
}
