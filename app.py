# app.py
"""
Application entry point.

Usage:
  python app.py giris Ayse --db stok.db
  python app.py stok ice-aktar stok.xlsx
  python app.py stok listele --filtre icd
  python app.py vaka kaydet --hastane X --doktor Y --hasta Z -m "Solia S 60|ABC123|1"
  python app.py gecmis listele
"""

from stok.adapters.cli import main

if __name__ == "__main__":
    main()
