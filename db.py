import argparse

from app import create_app


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create the library tables')
    parser.add_argument('--purge-otp', action='store_true', help='also delete expired and used one-time codes')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        from models import db
        from services import OtpService, SQLAlchemyRecordStore, notifier_from_config
        db.create_all()
        print('Initialized database tables:', ', '.join(sorted(db.metadata.tables)))
        if args.purge_otp:
            service = OtpService(
                SQLAlchemyRecordStore(),
                notifier_from_config(app.config),
                ttl_seconds=app.config['OTP_TTL_SECONDS'],
            )
            print('Purged one-time codes:', service.purge_expired())


if __name__ == '__main__':
    main()
