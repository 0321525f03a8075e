# stok/adapters/cli.py
"""
Stok CLI (Typer).

Main commands:
- giris / cikis                -> current user
- stok listele|ekle|cikar|hareket|sil|duzenle|ice-aktar|disa-aktar
- vaka kaydet|listele|otomatik-doldur
- kontrol yukle|goster|isaretle|tamamla
- gecmis listele|geri-al|detay
- ayarlar bilgi|log|stok-temizle|gecmis-temizle|hepsini-temizle

Every command takes ``--db`` (SQLite path). Domain errors are printed as one
red line and end the command with exit code 1.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stok.adapters.parsers import iso_to_tr_date
from stok.config import DB_PATH, DEFAULTS
from stok.domain.errors import StokError, ValidationError
from stok.domain.filters import FILTER_LABELS, build_stock_view
from stok.domain.models import HISTORY_LABELS
from stok.infra.logger import LOG_FILES, configure_logging, get_log_summary
from stok.infra.repositories import StockLedger
from stok.infra.store import SqliteStore
from stok.usecases import case_entry, checklist, excel, history, session, stock_management


app = typer.Typer(help="Stok — implant envanteri CLI")
console = Console()


@app.callback()
def _main(log: bool = typer.Option(False, "--log", help="İşlemleri stok/logs altına yaz")):
    if log:
        configure_logging(True)


# -----------------------
# util
# -----------------------

def _store(db_path: str) -> SqliteStore:
    return SqliteStore(db_path)


@contextmanager
def _errors() -> Iterator[None]:
    """Turns domain errors into a red line and exit code 1."""
    try:
        yield
    except StokError as e:
        console.print(f"[bold red]Hata:[/] {e}")
        raise typer.Exit(code=1)


def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2))


def _display_table(rows: List[Dict[str, Any]], title: str = "Sonuç") -> None:
    """Prints a list of dicts as a rounded Rich table."""
    if not rows:
        console.print(Panel("Kayıt bulunamadı", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    columns = list(rows[0].keys())
    for column in columns:
        if column in ("Miktar", "Adet", "Toplam"):
            table.add_column(column, justify="right")
        elif column in ("Tarih", "SKT"):
            table.add_column(column, justify="center")
        else:
            table.add_column(column)
    for row in rows:
        table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
    console.print(table)


def _parse_materials(specs: List[str]) -> List[Dict[str, Any]]:
    """``"NAME|SERIAL|QTY[|UBB]"`` strings to material dicts."""
    out = []
    for raw in specs:
        parts = [p.strip() for p in raw.split("|")]
        if len(parts) < 3:
            raise ValidationError(f"Malzeme biçimi 'AD|SERI|ADET[|UBB]' olmalı: {raw}")
        out.append({
            "material_name": parts[0],
            "serial_lot_number": parts[1],
            "quantity": parts[2],
            "ubb_code": parts[3] if len(parts) > 3 else "",
        })
    return out


# -----------------------
# session
# -----------------------

@app.command("giris")
def cmd_login(
    username: str = typer.Argument(..., help="Kullanıcı adı"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Kullanıcı adını kaydeder."""
    with _errors():
        session.login(_store(db_path), username)
    typer.echo(f">> Hoş geldiniz, {username.strip()}")


@app.command("cikis")
def cmd_logout(db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası")):
    """Oturumu kapatır."""
    session.logout(_store(db_path))
    typer.echo(">> Başarıyla çıkış yapıldı")


# -----------------------
# stok
# -----------------------

stock_app = typer.Typer(help="Stok listesi ve hareketleri")
app.add_typer(stock_app, name="stok")


@stock_app.command("listele")
def cmd_stock_list(
    search: Optional[str] = typer.Option(None, "--ara", help="Ad, seri/lot veya UBB içinde ara"),
    filters: Optional[List[str]] = typer.Option(None, "--filtre", "-f", help=f"{', '.join(FILTER_LABELS)}"),
    grouped: bool = typer.Option(False, "--grupla", help="Önek ve malzemeye göre grupla"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Stoktaki malzemeleri listeler."""
    with _errors():
        view = build_stock_view(StockLedger(_store(db_path)).all(), search, filters)

    _display_table(
        [{"Cihaz": d.title, "Açıklama": d.subtitle, "Toplam": d.total_quantity} for d in view.devices],
        title="Cihaz Özeti",
    )
    if grouped:
        rows = []
        for group in view.groups:
            for material in group.materials:
                for item in material.items:
                    rows.append({
                        "Grup": f"{group.prefix} ({group.total_quantity})",
                        "Malzeme": f"{material.full_name} ({material.total_quantity})",
                        "Seri/Lot": item.serial_lot_number,
                        "SKT": iso_to_tr_date(item.expiry_date),
                        "Miktar": item.quantity,
                    })
        _display_table(rows, title="Stok (gruplu)")
    else:
        _display_table(
            [
                {
                    "ID": i.id,
                    "Malzeme": i.material_name,
                    "Seri/Lot": i.serial_lot_number,
                    "UBB": i.ubb_code,
                    "SKT": iso_to_tr_date(i.expiry_date),
                    "Miktar": i.quantity,
                }
                for i in view.items
            ],
            title="Stok",
        )
    next_expiry = iso_to_tr_date(view.next_expiry) if view.next_expiry else "-"
    console.print(f"[dim]{view.item_count} kalem, toplam {view.total_quantity} adet, en yakın SKT: {next_expiry}[/dim]")


@stock_app.command("ekle")
def cmd_stock_add(
    material_name: str = typer.Argument(..., help="Malzeme adı"),
    serial_lot_number: str = typer.Argument(..., help="Seri/Lot numarası"),
    quantity: int = typer.Argument(..., help="Adet"),
    ubb_code: str = typer.Option("", "--ubb", help="UBB kodu"),
    expiry_date: str = typer.Option("", "--skt", help="Son kullanma tarihi (GG.AA.YYYY)"),
    from_: str = typer.Option("", "--kimden", help="Kimden"),
    to: str = typer.Option("", "--kime", help="Kime"),
    material_code: Optional[str] = typer.Option(None, "--kod", help="Malzeme kodu"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Stoğa yeni malzeme ekler."""
    with _errors():
        item = stock_management.add_stock(
            _store(db_path), material_name, serial_lot_number, quantity,
            ubb_code=ubb_code, expiry_date=expiry_date, from_=from_, to=to, material_code=material_code,
        )
    typer.echo(f">> Stok başarıyla eklendi: {item.material_name} ({item.quantity} adet) [{item.id}]")


@stock_app.command("cikar")
def cmd_stock_remove(
    material_name: str = typer.Argument(..., help="Malzeme adı"),
    serial_lot_number: str = typer.Argument(..., help="Seri/Lot numarası"),
    quantity: int = typer.Argument(..., help="Adet"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Stoktan malzeme çıkarır."""
    with _errors():
        item = stock_management.remove_stock(_store(db_path), material_name, serial_lot_number, quantity)
    typer.echo(f">> Stok başarıyla çıkarıldı: {item.material_name} ({item.quantity} adet)")


@stock_app.command("hareket")
def cmd_stock_movement(
    material_name: str = typer.Argument(..., help="Malzeme adı"),
    serial_lot_number: str = typer.Argument(..., help="Seri/Lot numarası"),
    quantity: int = typer.Argument(..., help="Adet"),
    from_: str = typer.Option("", "--kimden", help="Kimden (kendi adınız: stoktan çıkar)"),
    to: str = typer.Option("", "--kime", help="Kime (kendi adınız: stoğa ekle)"),
    ubb_code: str = typer.Option("", "--ubb", help="UBB kodu"),
    expiry_date: str = typer.Option("", "--skt", help="Son kullanma tarihi"),
    date: Optional[str] = typer.Option(None, "--tarih", help="İşlem tarihi"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Kimden/Kime formu: kendi adınızın olduğu taraf hareketin yönünü belirler."""
    with _errors():
        kind, item = stock_management.register_movement(
            _store(db_path), material_name, serial_lot_number, quantity,
            from_=from_, to=to, ubb_code=ubb_code, expiry_date=expiry_date, date=date,
        )
    verb = "eklendi" if kind == "add" else "çıkarıldı"
    typer.echo(f">> Stok başarıyla {verb}: {item.material_name} ({item.quantity} adet)")


@stock_app.command("sil")
def cmd_stock_delete(
    item_id: str = typer.Argument(..., help="Malzeme ID"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Malzemeyi envanterden tamamen kaldırır."""
    with _errors():
        item = stock_management.delete_stock(_store(db_path), item_id)
    typer.echo(f">> Malzeme envanterden kaldırıldı: {item.material_name}")


@stock_app.command("duzenle")
def cmd_stock_edit(
    item_id: str = typer.Argument(..., help="Malzeme ID"),
    serial_lot_number: Optional[str] = typer.Option(None, "--seri", help="Yeni seri/lot"),
    ubb_code: Optional[str] = typer.Option(None, "--ubb", help="Yeni UBB kodu"),
    expiry_date: Optional[str] = typer.Option(None, "--skt", help="Yeni son kullanma tarihi"),
    quantity: Optional[int] = typer.Option(None, "--miktar", help="Yeni adet"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Malzemenin seri/lot, UBB, SKT veya adedini günceller."""
    with _errors():
        item = stock_management.edit_stock(
            _store(db_path), item_id,
            serial_lot_number=serial_lot_number, ubb_code=ubb_code, expiry_date=expiry_date, quantity=quantity,
        )
    typer.echo(f">> Malzeme başarıyla güncellendi: {item.material_name}")


@stock_app.command("ice-aktar")
def cmd_stock_import(
    path: str = typer.Argument(..., help="XLSX dosyası"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Excel dosyasından stok içe aktarır."""
    with _errors():
        res = excel.import_stock(_store(db_path), path)
    msg = f">> {res['added']} malzeme içe aktarıldı"
    if res["skipped"]:
        msg += f" ({res['skipped']} adet zaten stokta olduğu için atlandı)"
    typer.echo(msg)


@stock_app.command("disa-aktar")
def cmd_stock_export(
    path: str = typer.Argument(DEFAULTS.export_filename, help="Hedef XLSX dosyası"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Stok listesini Excel dosyasına yazar."""
    with _errors():
        res = excel.export_stock(_store(db_path), path)
    typer.echo(f">> {res['rows']} satır yazıldı: {res['file']}")


# -----------------------
# vaka
# -----------------------

case_app = typer.Typer(help="Vaka kayıtları")
app.add_typer(case_app, name="vaka")


@case_app.command("kaydet")
def cmd_case_register(
    hospital_name: str = typer.Option(..., "--hastane", help="Hastane"),
    doctor_name: str = typer.Option(..., "--doktor", help="Doktor"),
    patient_name: str = typer.Option(..., "--hasta", help="Hasta"),
    materials: List[str] = typer.Option(..., "--malzeme", "-m", help="AD|SERI|ADET[|UBB] (tekrarlanabilir)"),
    notes: Optional[str] = typer.Option(None, "--not", help="Notlar"),
    date: Optional[str] = typer.Option(None, "--tarih", help="Vaka tarihi"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Vaka kaydı oluşturur ve kullanılan malzemeleri stoktan düşer."""
    with _errors():
        case = case_entry.register_case(
            _store(db_path), hospital_name, doctor_name, patient_name,
            _parse_materials(materials), notes=notes, date=date,
        )
    typer.echo(f">> Vaka kaydı başarıyla oluşturuldu ({len(case.materials)} malzeme) [{case.id}]")


@case_app.command("listele")
def cmd_case_list(db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası")):
    """Kayıtlı vakaları listeler."""
    cases = case_entry.list_cases(_store(db_path))
    _display_table(
        [
            {
                "Tarih": iso_to_tr_date(c.date),
                "Hastane": c.hospital_name,
                "Doktor": c.doctor_name,
                "Hasta": c.patient_name,
                "Malzemeler": ", ".join(f"{m.material_name} ({m.serial_lot_number}) x{m.quantity}" for m in c.materials),
            }
            for c in cases
        ],
        title="Vakalar",
    )


@case_app.command("otomatik-doldur")
def cmd_case_autofill(
    partial_serial: str = typer.Argument(..., help="Seri/lot numarasının bir kısmı"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Seri/lot parçasıyla tek eşleşen stok malzemesini gösterir."""
    item = case_entry.autofill_material(_store(db_path), partial_serial)
    if item is None:
        typer.echo("Tek bir eşleşme bulunamadı.")
        raise typer.Exit(code=1)
    typer.echo(f"{item.material_name}|{item.serial_lot_number}|{item.ubb_code}")


# -----------------------
# kontrol listesi
# -----------------------

checklist_app = typer.Typer(help="Hasta kontrol listesi")
app.add_typer(checklist_app, name="kontrol")


@checklist_app.command("yukle")
def cmd_checklist_import(
    path: str = typer.Argument(..., help="XLSX dosyası"),
    replace: bool = typer.Option(False, "--degistir", help="Aktif listeyi sil ve yenisini yükle"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Excel dosyasından hasta listesi yükler."""
    with _errors():
        record = checklist.import_checklist(_store(db_path), path, replace=replace)
    typer.echo(f">> {len(record.patients)} hasta başarıyla yüklendi")


@checklist_app.command("goster")
def cmd_checklist_show(db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası")):
    """Aktif kontrol listesini gösterir."""
    record = checklist.active_checklist(_store(db_path))
    if record is None:
        console.print(Panel("Aktif kontrol listesi yok", border_style="yellow"))
        return
    _display_table(
        [
            {
                "No": pos,
                "": "[green]✔[/]" if p.checked else "·",
                "Hasta": p.name,
                "Not": p.note,
                "Telefon": p.phone,
                "Şehir": p.city,
                "Hastane": p.hospital,
                "Tarih": p.date,
                "Saat": p.time,
            }
            for pos, p in enumerate(record.patients, start=1)
        ],
        title=record.title,
    )
    console.print(f"[dim]{record.checked_count}/{len(record.patients)} hasta kontrol edildi[/dim]")


@checklist_app.command("isaretle")
def cmd_checklist_toggle(
    patient: str = typer.Argument(..., help="Hasta sıra numarası (goster) veya ID"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Hastanın kontrol işaretini değiştirir."""
    store = _store(db_path)
    with _errors():
        patient_id = patient
        record = checklist.active_checklist(store)
        if record is not None and patient.isdigit() and 1 <= int(patient) <= len(record.patients):
            patient_id = record.patients[int(patient) - 1].id
        p = checklist.toggle_patient(store, patient_id)
    typer.echo(f">> {p.name}: {'kontrol edildi' if p.checked else 'işaret kaldırıldı'}")


@checklist_app.command("tamamla")
def cmd_checklist_complete(
    yes: bool = typer.Option(False, "--yes", "-y", help="Onay sormadan tamamla"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Aktif listeyi tamamlar ve geçmişe kaydeder."""

    def confirm(unchecked: int) -> bool:
        if yes:
            return True
        return typer.confirm(f"{unchecked} hastanın kontrolü yapılmadı. Yine de kaydetmek istiyor musunuz?")

    with _errors():
        record = checklist.complete_checklist(_store(db_path), confirm)
    if record is None:
        typer.echo("İşlem iptal edildi.")
        raise typer.Exit(code=1)
    typer.echo(">> Kontrol listesi tamamlandı ve geçmişe kaydedildi")


# -----------------------
# geçmiş
# -----------------------

history_app = typer.Typer(help="İşlem geçmişi ve geri alma")
app.add_typer(history_app, name="gecmis")


@history_app.command("listele")
def cmd_history_list(
    record_type: Optional[str] = typer.Option(None, "--tur", help=", ".join(HISTORY_LABELS)),
    start: Optional[str] = typer.Option(None, "--baslangic", help="Başlangıç tarihi"),
    end: Optional[str] = typer.Option(None, "--bitis", help="Bitiş tarihi"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Geçmiş kayıtlarını (yeniden eskiye) listeler."""
    with _errors():
        records = history.list_history(_store(db_path), record_type, start, end)
    _display_table(
        [{"ID": r.id, "Tarih": iso_to_tr_date(r.date), "Tür": r.label, "Açıklama": r.description} for r in records],
        title="Geçmiş",
    )


@history_app.command("geri-al")
def cmd_history_undo(
    record_id: str = typer.Argument(..., help="Geçmiş kaydı ID"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Bir geçmiş kaydını geri alır."""
    res = history.undo(_store(db_path), record_id)
    if not res.ok:
        console.print(f"[bold yellow]{res.message}[/]")
        raise typer.Exit(code=1)
    typer.echo(f">> {res.message}")


@history_app.command("detay")
def cmd_history_detail(
    record_id: str = typer.Argument(..., help="Geçmiş kaydı ID"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Geçmiş kaydını JSON olarak gösterir."""
    record = history.get_history(_store(db_path), record_id)
    if record is None:
        console.print("[bold yellow]Geçmiş kaydı bulunamadı[/]")
        raise typer.Exit(code=1)
    _print_json(record.to_dict())


# -----------------------
# ayarlar
# -----------------------

settings_app = typer.Typer(help="Ayarlar ve veri yönetimi")
app.add_typer(settings_app, name="ayarlar")


@settings_app.command("bilgi")
def cmd_settings_info(db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası")):
    """Kullanıcı ve kayıt sayılarını gösterir."""
    info = session.storage_info(_store(db_path))
    table = Table(title="Depolama Bilgisi", box=box.ROUNDED)
    table.add_column("Alan")
    table.add_column("Değer", justify="right")
    table.add_row("Kullanıcı", info["user"] or "-")
    table.add_row("Stok kalemi", str(info["stock_count"]))
    table.add_row("Vaka", str(info["cases_count"]))
    table.add_row("Geçmiş kaydı", str(info["history_count"]))
    table.add_row("Kontrol listesi", str(info["checklists_count"]))
    table.add_row("Aktif kontrol listesi", "Evet" if info["active_checklist"] else "Hayır")
    console.print(table)
    console.print(f"[dim]Veritabanı: {db_path}[/dim]")


@settings_app.command("log")
def cmd_settings_log(
    log_type: str = typer.Option("transactions", "--tur", help=", ".join(LOG_FILES)),
    lines: int = typer.Option(50, "--satir", help="Son kaç satır"),
):
    """Log dosyasının son satırlarını gösterir."""
    typer.echo(get_log_summary(log_type, lines))


def _confirm_or_abort(yes: bool, question: str) -> None:
    if not yes and not typer.confirm(question):
        typer.echo("İşlem iptal edildi.")
        raise typer.Exit(code=1)


@settings_app.command("stok-temizle")
def cmd_clear_stock(
    yes: bool = typer.Option(False, "--yes", "-y", help="Onay sormadan sil"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Tüm stok kayıtlarını siler."""
    _confirm_or_abort(yes, "Tüm stok kayıtları silinecek. Emin misiniz?")
    session.clear_stock(_store(db_path))
    typer.echo(">> Tüm stok kayıtları temizlendi")


@settings_app.command("gecmis-temizle")
def cmd_clear_history(
    yes: bool = typer.Option(False, "--yes", "-y", help="Onay sormadan sil"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Tüm geçmiş kayıtlarını siler."""
    _confirm_or_abort(yes, "Tüm geçmiş kayıtları silinecek. Emin misiniz?")
    session.clear_history(_store(db_path))
    typer.echo(">> Tüm geçmiş kayıtları temizlendi")


@settings_app.command("hepsini-temizle")
def cmd_clear_all(
    yes: bool = typer.Option(False, "--yes", "-y", help="Onay sormadan sil"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite dosyası"),
):
    """Tüm verileri (kullanıcı dahil) siler."""
    _confirm_or_abort(yes, "TÜM veriler silinecek. Emin misiniz?")
    session.clear_all(_store(db_path))
    typer.echo(">> Tüm veriler temizlendi")


def main():
    app()


if __name__ == "__main__":
    main()
