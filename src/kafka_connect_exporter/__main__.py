from kafka_connect_exporter.main import main

main()
