# the following few lines are just to remind me of what commands I need to deploy
# functions/venv/Scripts/activate
# pip install -r functions/requirements.txt

# firebase deploy --only functions
# firebase deploy --only functions:notify_users_near_report


from firebase_functions import firestore_fn, logger
from firebase_admin import initialize_app, firestore

# Own imports
from config.loader import get_settings
from alerts import CandidateQueryError, process_fire_report

initialize_app()

settings = get_settings()


@firestore_fn.on_document_created(document="reports/{reportId}", region=settings.region, retry=False)
def notify_users_near_report(event: firestore_fn.Event[firestore_fn.DocumentSnapshot | None]) -> None:
    """
    Push a fire alert to every registered device near a newly created report.
    Runs once per created reports/{reportId} document and is never retried.
    """
    report_id = event.params["reportId"]
    logger.info(f"🔥 Fire report function triggered for reportId: {report_id}")

    snapshot = event.data
    if snapshot is None:
        logger.info("❌ No data found in report document")
        return

    try:
        outcome = process_fire_report(report_id, snapshot.to_dict(), db=firestore.client(), settings=settings)
        logger.info(f"📊 Report {report_id} outcome: status={outcome.status}, "
                    f"candidates={outcome.candidates_found}, fallback={outcome.used_fallback}, "
                    f"recipients={outcome.recipients}")
    except CandidateQueryError as e:
        logger.error(f"❌ Presence query failed for report {report_id}, no notifications sent: {e}")
        raise
