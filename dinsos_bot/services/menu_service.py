"""Fixed reply texts: menus, contact card, office-hours notice and suffixes."""

from datetime import datetime

from dinsos_bot.config import Settings
from dinsos_bot.services.knowledge_service import KnowledgeBase, Program
from dinsos_bot.services.working_hours_service import time_based_greeting, working_hours_info

FAQ_DIGEST_LIMIT = 5

PROCESSING = "Sebentar ya, saya cari jawabannya..."
AI_RESPONSE_SUFFIX = "\n\nSemoga jawaban saya membantu! Kalau masih bingung atau mau tanya lagi, langsung chat aja."
FAQ_RESPONSE_SUFFIX = "\n\nSemoga membantu ya! Ada yang mau ditanya lagi?"
PROGRAM_NOT_FOUND = 'Program yang kamu maksud ga ketemu nih. Coba lihat daftar program dulu ya, ketik angka "2".'
GENERIC_ERROR = "Maaf, lagi ada kendala teknis di sistem kami. Coba kirim pesannya lagi beberapa saat lagi ya."


def main_menu(local_now: datetime, settings: Settings) -> str:
    return (
        f"{time_based_greeting(local_now)}!\n\n"
        f"Saya asisten dari {settings.dinas_name}. Ada yang bisa saya bantu?\n\n"
        "Kalau mau, bisa pilih:\n"
        "1. Info program bantuan sosial\n"
        "2. Daftar bantuan\n"
        "3. Tanya-tanya (FAQ)\n"
        "4. Kontak kami\n\n"
        "Atau langsung chat aja, saya siap bantu!"
    )


def services_info(local_now: datetime, knowledge: KnowledgeBase) -> str:
    lines = [f"{time_based_greeting(local_now)}! Ini daftar program bantuan yang ada:\n"]
    if not knowledge.programs:
        lines.append("Maaf, saat ini belum ada program yang tersedia.\n")
    for index, program in enumerate(knowledge.programs, start=1):
        lines.append(f"{index}. {program.name}\n   {program.description}\n")
    lines.append('Mau tahu lebih detail? Tinggal kirim angka programnya aja!\nAtau ketik "menu" kalau mau balik ke awal.')
    return "\n".join(lines)


def program_detail(program: Program) -> str:
    requirements = "\n".join(f"  {i}. {req}" for i, req in enumerate(program.requirements, start=1))
    return (
        f"Ini info tentang {program.name}:\n\n"
        f"{program.description}\n\n"
        "Syarat yang perlu disiapkan:\n"
        f"{requirements}\n\n"
        f"Cara daftarnya:\n{program.how_to_apply}\n\n"
        f"Kalau mau daftar sekarang, tinggal ketik:\ndaftar {program.name}"
    )


def faq_digest(local_now: datetime, knowledge: KnowledgeBase) -> str:
    lines = [f"{time_based_greeting(local_now)}! Ini beberapa pertanyaan yang sering ditanya:\n"]
    if not knowledge.faq:
        lines.append("Belum ada FAQ nih. Tapi ga papa, langsung tanya aja ke saya!\n")
    for index, entry in enumerate(knowledge.faq[:FAQ_DIGEST_LIMIT], start=1):
        lines.append(f"{index}. {entry.title}\n{entry.answer}\n")
    lines.append('Ada pertanyaan lain? Langsung chat aja atau ketik "menu" ya!')
    return "\n".join(lines)


def contact_card(local_now: datetime, settings: Settings) -> str:
    return (
        f"{time_based_greeting(local_now)}! Kalau mau hubungi kami, ini kontaknya:\n\n"
        f"Telepon: {settings.contact_phone}\n"
        f"WhatsApp: {settings.contact_whatsapp}\n"
        f"Email: {settings.contact_email}\n"
        f"Alamat: {settings.office_address}\n\n"
        f"{working_hours_info(settings)}\n\n"
        "Atau langsung chat di sini juga bisa kok!"
    )


def outside_working_hours(local_now: datetime, settings: Settings) -> str:
    return (
        f"{time_based_greeting(local_now)}\n\n"
        "Maaf, saat ini di luar jam kerja kantor.\n\n"
        f"{working_hours_info(settings)}\n\n"
        "Silakan hubungi kami kembali di jam kerja atau untuk bantuan darurat, hubungi:\n"
        f"WhatsApp: {settings.contact_whatsapp}\n\n"
        'Ketik "menu" untuk melihat informasi yang tersedia.'
    )


def ai_error_fallback(settings: Settings) -> str:
    return (
        "Maaf, saya sedang mengalami kendala teknis saat memproses pertanyaan Anda.\n\n"
        "Silakan:\n"
        "1. Coba lagi beberapa saat\n"
        '2. Ketik "menu" untuk melihat info yang tersedia\n'
        "3. Hubungi staff kami:\n"
        f"   WhatsApp: {settings.contact_whatsapp}\n"
        f"   Telepon: {settings.contact_phone}\n\n"
        "Terima kasih atas pengertiannya."
    )
