from clipreceiver.main import main

main()
