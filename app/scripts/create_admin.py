# app/scripts/create_admin.py
import logging
import os
from app.db.session import SessionLocal
from app.crud.crud_user import get_user_by_email, create_user

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    logger.info("Iniciando creación de usuario administrador...")
    admin_username = os.getenv("ADMIN_USERNAME", "admin")
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.error("Defina ADMIN_PASSWORD para crear el administrador.")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        user = get_user_by_email(db, email=admin_email)
        if not user:
            create_user(db, username=admin_username, email=admin_email,
                        password=admin_password, is_admin=True)
            logger.info(f"Usuario administrador '{admin_email}' creado exitosamente.")
        else:
            logger.info(f"El usuario administrador '{admin_email}' ya existe.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
